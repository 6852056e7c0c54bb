"""Normalized outbound event vocabulary and payload builders."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EventType(str, Enum):
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_FAILED = "payment_failed"
    TEST = "test"


class DeliverySource(str, Enum):
    WEBHOOK_DELIVERY = "webhook_delivery"
    MANUAL_TEST = "manual_test"


APPROVED = "approved"
_FAILED_STATUSES = frozenset({"rejected", "cancelled"})

# Fixed sample values for manual test deliveries
TEST_AMOUNT = 37.9
TEST_STATUS = APPROVED
TEST_PAYMENT_METHOD = "pix"
TEST_NOTE = "This is a webhook test. Use it to validate your integration."


def event_type_for_status(status: Optional[str]) -> EventType:
    """Map a processor payment status to the normalized event type.

    approved → payment_success; rejected/cancelled → payment_failed;
    anything else (pending, in_process, authorized, ...) → payment_pending.
    """
    if status == APPROVED:
        return EventType.PAYMENT_SUCCESS
    if status in _FAILED_STATUSES:
        return EventType.PAYMENT_FAILED
    return EventType.PAYMENT_PENDING


def build_event_payload(
    event_type: EventType,
    payment: dict[str, Any],
    *,
    timestamp: datetime,
) -> dict[str, Any]:
    """Outbound body: exactly event_type, payment_id, email, amount, status,
    payment_method and the dispatch-time timestamp."""
    return {
        "event_type": event_type.value,
        "payment_id": payment.get("id"),
        "email": payment.get("email"),
        "amount": payment.get("amount"),
        "status": payment.get("status"),
        "payment_method": payment.get("payment_method"),
        "timestamp": timestamp.isoformat(),
    }


def build_test_payload(email: Optional[str], *, timestamp: datetime) -> dict[str, Any]:
    """Synthetic payload for the manual test trigger.

    payment_id is derived from the clock (``test_<epoch-ms>``).
    """
    payload = build_event_payload(
        EventType.TEST,
        {
            "id": f"test_{int(timestamp.timestamp() * 1000)}",
            "email": email,
            "amount": TEST_AMOUNT,
            "status": TEST_STATUS,
            "payment_method": TEST_PAYMENT_METHOD,
        },
        timestamp=timestamp,
    )
    payload["note"] = TEST_NOTE
    return payload
