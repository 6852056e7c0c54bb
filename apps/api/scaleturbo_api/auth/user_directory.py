"""Account directory lookup (Supabase Auth admin API).

Payments are matched to platform users by exact email equality against the
Supabase user listing. The listing is paginated; every page is scanned.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from supabase import Client

from scaleturbo_api.config.settings import Settings
from scaleturbo_api.supabase_client import get_supabase_admin_client

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


@dataclass(frozen=True)
class DirectoryUser:
    """Platform account matched to a payer."""

    id: str
    email: Optional[str]


class SupabaseUserDirectory:
    def __init__(self, client: Client, *, per_page: int = DEFAULT_PAGE_SIZE):
        self._client = client
        self.per_page = per_page

    def find_by_email(self, email: Optional[str]) -> Optional[DirectoryUser]:
        """Return the account whose email equals ``email`` exactly, or None."""
        if not email:
            return None

        page = 1
        while True:
            users = self._client.auth.admin.list_users(page=page, per_page=self.per_page)
            for user in users:
                if user.email == email:
                    return DirectoryUser(id=str(user.id), email=user.email)
            if len(users) < self.per_page:
                return None
            page += 1


def get_user_directory(settings: Settings) -> SupabaseUserDirectory:
    """Directory backed by the Supabase admin client.

    Raises:
        RuntimeError: If Supabase admin credentials are not configured
    """
    return SupabaseUserDirectory(get_supabase_admin_client(settings))
