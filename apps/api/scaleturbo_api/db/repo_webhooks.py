"""Webhook repositories (subscriptions + append-only delivery log)."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from scaleturbo_api.db.models import WebhookLog, WebhookSetting
from scaleturbo_api.db.upsert import upsert

logger = logging.getLogger(__name__)


class WebhookSettingRepository:
    """Webhook Subscription Store: one row per user."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[WebhookSetting]:
        return self.db.get(WebhookSetting, user_id, populate_existing=True)

    def get_active(self, user_id: str) -> Optional[WebhookSetting]:
        """Subscription for ``user_id`` if it exists and is active."""
        return (
            self.db.query(WebhookSetting)
            .filter(WebhookSetting.user_id == user_id, WebhookSetting.is_active.is_(True))
            .first()
        )

    def save(self, *, user_id: str, webhook_url: str, is_active: bool = True) -> WebhookSetting:
        """Create or replace the caller's subscription and commit."""
        now = datetime.now(timezone.utc)
        upsert(
            self.db,
            WebhookSetting,
            {
                "user_id": user_id,
                "webhook_url": webhook_url,
                "is_active": is_active,
                "created_at": now,
                "updated_at": now,
            },
            conflict_columns=("user_id",),
            update_columns=("webhook_url", "is_active", "updated_at"),
        )
        self.db.commit()

        setting = self.get(user_id)
        assert setting is not None
        return setting


class WebhookLogRepository:
    """Delivery Log. Insert and read only; entries are never updated or deleted."""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        *,
        user_id: str,
        webhook_url: str,
        event_type: str,
        payload: dict[str, Any],
        response_status: Optional[int],
        response_body: Optional[str],
        success: bool,
        source: str,
    ) -> WebhookLog:
        entry = WebhookLog(
            user_id=user_id,
            webhook_url=webhook_url,
            event_type=event_type,
            payload=payload,
            response_status=response_status,
            response_body=response_body,
            success=success,
            source=source,
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    def list_recent(self, user_id: str, *, limit: int = 10) -> list[WebhookLog]:
        """Most recent entries for ``user_id``, newest first."""
        return (
            self.db.query(WebhookLog)
            .filter(WebhookLog.user_id == user_id)
            .order_by(WebhookLog.created_at.desc(), WebhookLog.id.desc())
            .limit(limit)
            .all()
        )

    def count_for_user(self, user_id: str) -> int:
        return self.db.query(WebhookLog).filter(WebhookLog.user_id == user_id).count()
