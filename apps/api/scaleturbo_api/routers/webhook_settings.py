"""Webhook management endpoints for signed-in users.

- POST /v1/webhooks/test       manual test trigger (saved URL or not)
- GET  /v1/webhooks/settings   current subscription
- PUT  /v1/webhooks/settings   create/replace subscription
- GET  /v1/webhooks/logs       recent Delivery Log entries

AUTHENTICATION: Supabase session JWT (Authorization: Bearer <jwt>).
Every operation is scoped to the caller's own user_id.
"""

import json as _json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from scaleturbo_api.auth.session_auth import SessionUser, get_session_user
from scaleturbo_api.config.settings import Settings, get_settings
from scaleturbo_api.db.repo_webhooks import WebhookLogRepository, WebhookSettingRepository
from scaleturbo_api.db.session import get_db
from scaleturbo_api.problems import problem_response
from scaleturbo_api.schemas import (
    ProblemDetail,
    WebhookLogEntry,
    WebhookLogList,
    WebhookSettingsRequest,
    WebhookSettingsResponse,
    WebhookTestResult,
)
from scaleturbo_api.utils.sanitize import sanitize_str, truncate_text
from scaleturbo_api.webhooks.dispatcher import WebhookDispatcher, get_webhook_dispatcher
from scaleturbo_api.webhooks.url_policy import is_valid_webhook_url

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


def _read_webhook_url(raw_body: bytes) -> Optional[str]:
    try:
        body = _json.loads(raw_body) if raw_body else None
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    webhook_url = body.get("webhook_url")
    if not isinstance(webhook_url, str) or not webhook_url.strip():
        return None
    return webhook_url.strip()


# ============================================================================
# Manual test trigger
# ============================================================================


@router.post(
    "/test",
    response_model=WebhookTestResult,
    responses={400: {"model": ProblemDetail}, 401: {"model": ProblemDetail}, 500: {"model": ProblemDetail}},
)
async def test_webhook(
    request: Request,
    user: SessionUser = Depends(get_session_user),
    settings: Settings = Depends(get_settings),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
):
    """Send a synthetic ``test`` event to ``webhook_url`` and report the result.

    The URL does not need to be saved first. A non-2xx answer from the
    endpoint is still a 200 here (``success: false``); only a delivery that
    never produced a response is reported as 500.

    Raises:
        401: Missing or invalid session
        400: Body without webhook_url
        500: Endpoint unreachable or unexpected failure
    """
    webhook_url = _read_webhook_url(await request.body())
    if webhook_url is None:
        return problem_response(
            status.HTTP_400_BAD_REQUEST,
            "webhook_url is required",
            code="WEBHOOK_URL_REQUIRED",
        )

    try:
        outcome = await dispatcher.send_test(user.user_id, user.email, webhook_url)
    except Exception as exc:
        logger.error(
            "WEBHOOK_TEST_FAILED",
            extra={"event": "webhook.test.failed", "error_type": type(exc).__name__},
            exc_info=True,
        )
        return problem_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            sanitize_str(str(exc)) or "Webhook test failed",
            code="WEBHOOK_TEST_FAILED",
        )

    if not outcome.reached_endpoint:
        return problem_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            outcome.error or "Webhook test failed",
            code="WEBHOOK_TEST_UNREACHABLE",
        )

    logger.info(
        "WEBHOOK_TEST_SENT",
        extra={
            "event": "webhook.test.sent",
            "success": outcome.success,
            "response_status": outcome.status_code,
        },
    )
    return WebhookTestResult(
        success=outcome.success,
        status_code=outcome.status_code,
        response_preview=truncate_text(outcome.response_body, settings.webhook_preview_limit),
    )


# ============================================================================
# Subscription
# ============================================================================


def _settings_response(setting) -> WebhookSettingsResponse:
    return WebhookSettingsResponse(
        webhook_url=setting.webhook_url,
        is_active=setting.is_active,
        updated_at=setting.updated_at,
    )


@router.get(
    "/settings",
    response_model=WebhookSettingsResponse,
    responses={401: {"model": ProblemDetail}, 404: {"model": ProblemDetail}},
)
async def get_webhook_settings(
    user: SessionUser = Depends(get_session_user),
    db: Session = Depends(get_db),
):
    setting = WebhookSettingRepository(db).get(user.user_id)
    if setting is None:
        return problem_response(
            status.HTTP_404_NOT_FOUND,
            "No webhook configured",
            code="WEBHOOK_NOT_CONFIGURED",
        )
    return _settings_response(setting)


@router.put(
    "/settings",
    response_model=WebhookSettingsResponse,
    responses={400: {"model": ProblemDetail}, 401: {"model": ProblemDetail}},
)
async def put_webhook_settings(
    body: WebhookSettingsRequest,
    user: SessionUser = Depends(get_session_user),
    db: Session = Depends(get_db),
):
    """Create or replace the caller's subscription (one per user)."""
    webhook_url = body.webhook_url.strip()
    if not is_valid_webhook_url(webhook_url):
        return problem_response(
            status.HTTP_400_BAD_REQUEST,
            "webhook_url must be an absolute http(s) URL",
            code="WEBHOOK_URL_INVALID",
        )

    setting = WebhookSettingRepository(db).save(
        user_id=user.user_id,
        webhook_url=webhook_url,
        is_active=body.is_active,
    )
    logger.info(
        "Webhook settings saved",
        extra={"event": "webhook.settings.saved", "is_active": setting.is_active},
    )
    return _settings_response(setting)


# ============================================================================
# Delivery Log
# ============================================================================


@router.get(
    "/logs",
    response_model=WebhookLogList,
    responses={401: {"model": ProblemDetail}},
)
async def list_webhook_logs(
    limit: int = Query(10, ge=1, le=100),
    user: SessionUser = Depends(get_session_user),
    db: Session = Depends(get_db),
) -> WebhookLogList:
    """Most recent delivery attempts for the caller, newest first."""
    entries = WebhookLogRepository(db).list_recent(user.user_id, limit=limit)
    return WebhookLogList(
        items=[
            WebhookLogEntry(
                id=entry.id,
                webhook_url=entry.webhook_url,
                event_type=entry.event_type,
                payload=entry.payload,
                response_status=entry.response_status,
                response_body=entry.response_body,
                success=entry.success,
                source=entry.source,
                created_at=entry.created_at,
            )
            for entry in entries
        ]
    )
