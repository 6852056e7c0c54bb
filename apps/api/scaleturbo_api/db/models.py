"""SQLAlchemy ORM Models for Scale Turbo."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    BIGINT,
    BOOLEAN,
    INTEGER,
    JSON,
    NUMERIC,
    TEXT,
    TIMESTAMP,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Payment(Base):
    """Payment attempt reported by the processor, keyed by its payment id.

    Upsert-only: every notification for the same payment_id overwrites the
    row (last write wins). Rows are never deleted.
    """

    __tablename__ = "payments"

    payment_id: Mapped[str] = mapped_column(TEXT, primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    status: Mapped[str] = mapped_column(TEXT, nullable=False)  # pending/approved/rejected/...
    amount: Mapped[Optional[Decimal]] = mapped_column(NUMERIC(12, 2), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    observed_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (Index("idx_payments_email", "email"),)


class Profile(Base):
    """User profile carrying the lifetime-access entitlement flag."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)  # auth user id
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_premium: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class WebhookSetting(Base):
    """One outbound webhook subscription per user."""

    __tablename__ = "webhook_settings"

    user_id: Mapped[str] = mapped_column(TEXT, primary_key=True)
    webhook_url: Mapped[str] = mapped_column(TEXT, nullable=False)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class WebhookLog(Base):
    """Append-only audit entry for a single outbound delivery attempt.

    response_status is NULL when the attempt never got a response; in that
    case webhook_url holds the "error" sentinel and response_body the error.
    """

    __tablename__ = "webhook_logs"

    id: Mapped[int] = mapped_column(
        BIGINT().with_variant(INTEGER, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    webhook_url: Mapped[str] = mapped_column(TEXT, nullable=False)
    event_type: Mapped[str] = mapped_column(TEXT, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    response_status: Mapped[Optional[int]] = mapped_column(INTEGER, nullable=True)
    response_body: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    success: Mapped[bool] = mapped_column(BOOLEAN, nullable=False)
    source: Mapped[str] = mapped_column(TEXT, nullable=False, default="webhook_delivery")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_webhook_logs_user_created", "user_id", "created_at"),
        CheckConstraint(
            "event_type IN ('payment_success', 'payment_pending', 'payment_failed', 'test')",
            name="ck_webhook_logs_event_type",
        ),
        CheckConstraint(
            "source IN ('webhook_delivery', 'manual_test')",
            name="ck_webhook_logs_source",
        ),
    )
