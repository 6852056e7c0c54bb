"""Outbound webhook dispatcher.

Delivery is best-effort: a single POST per event, no signature, no retry,
no queue. Every attempt that reaches the POST stage appends exactly one
Delivery Log entry, and the dispatcher never raises to its caller. A broken
third-party endpoint must not disrupt payment recording or the processor
acknowledgement.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from scaleturbo_api.config.settings import Settings, get_settings
from scaleturbo_api.db.models import WebhookLog
from scaleturbo_api.db.repo_webhooks import WebhookLogRepository, WebhookSettingRepository
from scaleturbo_api.db.session import get_db
from scaleturbo_api.utils.sanitize import redact_url, sanitize_str, truncate_text
from scaleturbo_api.webhooks.events import (
    DeliverySource,
    EventType,
    build_event_payload,
    build_test_payload,
)

logger = logging.getLogger(__name__)

# Recorded as webhook_url when the destination never produced a response
ERROR_URL_SENTINEL = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt. Returned, never raised."""

    webhook_url: str
    payload: dict[str, Any]
    success: bool
    status_code: Optional[int] = None
    response_body: str = ""
    error: Optional[str] = None
    log_entry_id: Optional[int] = field(default=None, compare=False)

    @property
    def reached_endpoint(self) -> bool:
        return self.error is None


class WebhookDispatcher:
    """Builds normalized payloads, POSTs them and records the outcome."""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.subscriptions = WebhookSettingRepository(db)
        self.logs = WebhookLogRepository(db)
        self._transport = transport
        self._clock = clock

    async def dispatch(
        self,
        user_id: str,
        event_type: EventType,
        payment: dict[str, Any],
    ) -> Optional[DeliveryOutcome]:
        """Forward a payment event to the user's active subscription.

        Args:
            user_id: Account the payment resolved to
            event_type: Normalized event type
            payment: id, email, amount, status, payment_method

        Returns:
            The outcome, or None when the user has no active subscription
            (no delivery, no log entry)
        """
        try:
            subscription = self.subscriptions.get_active(user_id)
        except Exception as exc:
            logger.error(
                "WEBHOOK_SUBSCRIPTION_LOOKUP_FAILED",
                extra={"error_type": type(exc).__name__, "error_msg": sanitize_str(str(exc))},
                exc_info=True,
            )
            return None

        if subscription is None:
            logger.info(
                "WEBHOOK_NOT_CONFIGURED",
                extra={"event": "webhook.skipped", "event_type": event_type.value},
            )
            return None

        payload = build_event_payload(event_type, payment, timestamp=self._clock())
        outcome = await self._post(subscription.webhook_url, payload)
        return self._record(
            outcome,
            user_id=user_id,
            event_type=event_type,
            source=DeliverySource.WEBHOOK_DELIVERY,
        )

    async def send_test(
        self,
        user_id: str,
        email: Optional[str],
        webhook_url: str,
    ) -> DeliveryOutcome:
        """Deliver a synthetic test event to ``webhook_url`` (saved or not)."""
        payload = build_test_payload(email, timestamp=self._clock())
        outcome = await self._post(webhook_url, payload)
        return self._record(
            outcome,
            user_id=user_id,
            event_type=EventType.TEST,
            source=DeliverySource.MANUAL_TEST,
        )

    async def _post(self, webhook_url: str, payload: dict[str, Any]) -> DeliveryOutcome:
        logger.info(
            "WEBHOOK_SENDING",
            extra={
                "event": "webhook.sending",
                "event_type": payload.get("event_type"),
                "webhook_url": redact_url(webhook_url),
            },
        )
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.settings.webhook_timeout_seconds,
                follow_redirects=True,
            ) as client:
                response = await client.post(
                    webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.warning(
                "WEBHOOK_DELIVERY_ERROR",
                extra={
                    "event": "webhook.delivery_error",
                    "error_type": type(exc).__name__,
                    "error_msg": sanitize_str(error),
                },
            )
            return DeliveryOutcome(
                webhook_url=ERROR_URL_SENTINEL,
                payload=payload,
                success=False,
                response_body=error,
                error=error,
            )

        success = response.is_success
        logger.log(
            logging.INFO if success else logging.WARNING,
            "WEBHOOK_DELIVERED" if success else "WEBHOOK_REJECTED",
            extra={
                "event": "webhook.delivered" if success else "webhook.rejected",
                "response_status": response.status_code,
            },
        )
        return DeliveryOutcome(
            webhook_url=webhook_url,
            payload=payload,
            success=success,
            status_code=response.status_code,
            response_body=response.text,
        )

    def _record(
        self,
        outcome: DeliveryOutcome,
        *,
        user_id: str,
        event_type: EventType,
        source: DeliverySource,
    ) -> DeliveryOutcome:
        """Append the Delivery Log entry; a failed write is logged, not raised."""
        try:
            entry: WebhookLog = self.logs.append(
                user_id=user_id,
                webhook_url=outcome.webhook_url,
                event_type=event_type.value,
                payload=outcome.payload,
                response_status=outcome.status_code,
                response_body=truncate_text(
                    outcome.response_body, self.settings.webhook_response_body_limit
                ),
                success=outcome.success,
                source=source.value,
            )
        except Exception as exc:
            self.logs.db.rollback()
            logger.error(
                "WEBHOOK_LOG_WRITE_FAILED",
                extra={
                    "source": source.value,
                    "error_type": type(exc).__name__,
                    "error_msg": sanitize_str(str(exc)),
                },
                exc_info=True,
            )
            return outcome

        return DeliveryOutcome(
            webhook_url=outcome.webhook_url,
            payload=outcome.payload,
            success=outcome.success,
            status_code=outcome.status_code,
            response_body=outcome.response_body,
            error=outcome.error,
            log_entry_id=entry.id,
        )


def get_webhook_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for outbound deliveries; None means the real network.

    Tests override this dependency with ``httpx.MockTransport``.
    """
    return None


def get_webhook_dispatcher(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_webhook_transport),
) -> WebhookDispatcher:
    return WebhookDispatcher(db, settings, transport=transport)
