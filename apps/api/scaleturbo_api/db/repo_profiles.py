"""Profile repository (entitlement flag)."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from scaleturbo_api.db.models import Profile

logger = logging.getLogger(__name__)


class ProfileRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[Profile]:
        return self.db.get(Profile, user_id)

    def grant_premium(self, user_id: str, email: Optional[str] = None) -> Profile:
        """Set is_premium=True for ``user_id`` and commit.

        Creates the profile row when the user has none yet. Never unsets
        the flag.
        """
        profile = self.get(user_id)
        if profile is None:
            profile = Profile(id=user_id, email=email, is_premium=True)
            self.db.add(profile)
            logger.info(
                "Profile created with entitlement",
                extra={"event": "profile.created", "profile_id": user_id},
            )
        elif not profile.is_premium:
            profile.is_premium = True
        self.db.commit()
        return profile
