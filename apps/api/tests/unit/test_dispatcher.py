"""Tests for the outbound webhook dispatcher.

Delivery contract:
- No subscription / inactive subscription → no POST, no log entry
- Every POST attempt → exactly one Delivery Log entry
- Non-2xx answer → success=false with the real status code
- No response at all → webhook_url "error", response_status NULL
- The dispatcher never raises to its caller
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest

from scaleturbo_api.db.repo_webhooks import WebhookLogRepository, WebhookSettingRepository
from scaleturbo_api.webhooks.dispatcher import ERROR_URL_SENTINEL, WebhookDispatcher
from scaleturbo_api.webhooks.events import EventType
from webhook_helpers import FakeEndpoint

USER_ID = "user-1"
HOOK_URL = "https://ex.com/hook"
FIXED_NOW = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)

PAYMENT = {
    "id": "123",
    "email": "a@x.com",
    "amount": 37.9,
    "status": "approved",
    "payment_method": "pix",
}


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint()


@pytest.fixture
def dispatcher(db_session, settings, endpoint) -> WebhookDispatcher:
    return WebhookDispatcher(db_session, settings, transport=endpoint.transport, clock=lambda: FIXED_NOW)


def _subscribe(db_session, url: str = HOOK_URL, is_active: bool = True) -> None:
    WebhookSettingRepository(db_session).save(user_id=USER_ID, webhook_url=url, is_active=is_active)


def _logs(db_session):
    return WebhookLogRepository(db_session).list_recent(USER_ID, limit=100)


@pytest.mark.asyncio
async def test_dispatch_posts_normalized_payload_and_logs(db_session, dispatcher, endpoint):
    _subscribe(db_session)

    outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_SUCCESS, PAYMENT)

    assert outcome is not None
    assert outcome.success is True
    assert outcome.status_code == 200

    assert len(endpoint.requests) == 1
    request = endpoint.requests[0]
    assert request.method == "POST"
    assert str(request.url) == HOOK_URL
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {
        "event_type": "payment_success",
        "payment_id": "123",
        "email": "a@x.com",
        "amount": 37.9,
        "status": "approved",
        "payment_method": "pix",
        "timestamp": FIXED_NOW.isoformat(),
    }

    logs = _logs(db_session)
    assert len(logs) == 1
    entry = logs[0]
    assert entry.id == outcome.log_entry_id
    assert entry.webhook_url == HOOK_URL
    assert entry.event_type == "payment_success"
    assert entry.response_status == 200
    assert entry.response_body == '{"received": true}'
    assert entry.success is True
    assert entry.source == "webhook_delivery"
    assert entry.payload["payment_id"] == "123"


@pytest.mark.asyncio
async def test_dispatch_without_subscription_is_a_noop(db_session, dispatcher, endpoint):
    outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_SUCCESS, PAYMENT)

    assert outcome is None
    assert endpoint.requests == []
    assert _logs(db_session) == []


@pytest.mark.asyncio
async def test_inactive_subscription_is_invisible(db_session, dispatcher, endpoint):
    _subscribe(db_session, is_active=False)

    outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_SUCCESS, PAYMENT)

    assert outcome is None
    assert endpoint.requests == []
    assert _logs(db_session) == []


@pytest.mark.asyncio
async def test_endpoint_500_is_logged_as_failure(db_session, dispatcher, endpoint):
    _subscribe(db_session)
    endpoint.status_code = 500
    endpoint.body = "upstream exploded"

    outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_FAILED, {**PAYMENT, "status": "rejected"})

    assert outcome is not None
    assert outcome.success is False
    assert outcome.reached_endpoint is True

    [entry] = _logs(db_session)
    assert entry.success is False
    assert entry.response_status == 500
    assert entry.response_body == "upstream exploded"
    assert entry.webhook_url == HOOK_URL
    assert entry.event_type == "payment_failed"


def _redirecting_endpoint(seen: list[httpx.Request]) -> httpx.MockTransport:
    """http://ex.com/hook answers 308 to https://ex.com/hook, which answers 200."""

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.scheme == "http":
            return httpx.Response(308, headers={"Location": "https://ex.com/hook"})
        return httpx.Response(200, text="ok")

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_redirect_is_followed_and_final_status_recorded(db_session, settings):
    seen: list[httpx.Request] = []
    dispatcher = WebhookDispatcher(
        db_session, settings, transport=_redirecting_endpoint(seen), clock=lambda: FIXED_NOW
    )
    _subscribe(db_session, url="http://ex.com/hook")

    outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_SUCCESS, PAYMENT)

    assert outcome.success is True
    assert outcome.status_code == 200
    assert [str(r.url) for r in seen] == ["http://ex.com/hook", "https://ex.com/hook"]
    assert json.loads(seen[1].content)["payment_id"] == "123"

    [entry] = _logs(db_session)
    assert entry.success is True
    assert entry.response_status == 200
    assert entry.response_body == "ok"
    assert entry.webhook_url == "http://ex.com/hook"


@pytest.mark.asyncio
async def test_send_test_follows_redirects(db_session, settings):
    seen: list[httpx.Request] = []
    dispatcher = WebhookDispatcher(
        db_session, settings, transport=_redirecting_endpoint(seen), clock=lambda: FIXED_NOW
    )

    outcome = await dispatcher.send_test(USER_ID, "a@x.com", "http://ex.com/hook")

    assert outcome.success is True
    assert outcome.status_code == 200
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_network_failure_logs_error_sentinel(db_session, dispatcher, endpoint):
    _subscribe(db_session)
    endpoint.error = httpx.ConnectError("connection refused")

    outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_SUCCESS, PAYMENT)

    assert outcome is not None
    assert outcome.success is False
    assert outcome.reached_endpoint is False
    assert outcome.error == "connection refused"

    [entry] = _logs(db_session)
    assert entry.webhook_url == ERROR_URL_SENTINEL
    assert entry.response_status is None
    assert entry.response_body == "connection refused"
    assert entry.success is False
    assert entry.payload["event_type"] == "payment_success"


@pytest.mark.asyncio
async def test_response_body_is_truncated_in_log(db_session, dispatcher, endpoint, settings):
    _subscribe(db_session)
    endpoint.body = "x" * (settings.webhook_response_body_limit + 500)

    outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_PENDING, {**PAYMENT, "status": "pending"})

    [entry] = _logs(db_session)
    assert len(entry.response_body) == settings.webhook_response_body_limit
    # The outcome itself keeps the full body
    assert len(outcome.response_body) == settings.webhook_response_body_limit + 500


@pytest.mark.asyncio
async def test_log_write_failure_does_not_raise(db_session, dispatcher, endpoint):
    _subscribe(db_session)

    with patch.object(WebhookLogRepository, "append", side_effect=RuntimeError("disk full")):
        outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_SUCCESS, PAYMENT)

    assert outcome is not None
    assert outcome.success is True
    assert outcome.log_entry_id is None
    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_subscription_lookup_failure_skips_delivery(dispatcher, endpoint):
    with patch.object(WebhookSettingRepository, "get_active", side_effect=RuntimeError("db down")):
        outcome = await dispatcher.dispatch(USER_ID, EventType.PAYMENT_SUCCESS, PAYMENT)

    assert outcome is None
    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_send_test_ignores_saved_subscription(db_session, dispatcher, endpoint):
    _subscribe(db_session, url="https://saved.example.com/hook", is_active=False)

    outcome = await dispatcher.send_test(USER_ID, "a@x.com", "https://adhoc.example.com/hook")

    assert outcome.success is True
    assert [str(r.url) for r in endpoint.requests] == ["https://adhoc.example.com/hook"]
    body = json.loads(endpoint.requests[0].content)
    assert body["event_type"] == "test"
    assert body["payment_id"] == f"test_{int(FIXED_NOW.timestamp() * 1000)}"
    assert "note" in body

    [entry] = _logs(db_session)
    assert entry.source == "manual_test"
    assert entry.event_type == "test"
    assert entry.webhook_url == "https://adhoc.example.com/hook"


@pytest.mark.asyncio
async def test_send_test_network_failure_still_logs(db_session, dispatcher, endpoint):
    endpoint.error = httpx.ReadTimeout("timed out")

    outcome = await dispatcher.send_test(USER_ID, "a@x.com", HOOK_URL)

    assert outcome.reached_endpoint is False
    [entry] = _logs(db_session)
    assert entry.source == "manual_test"
    assert entry.webhook_url == ERROR_URL_SENTINEL
    assert entry.response_status is None
