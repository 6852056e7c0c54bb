"""Pydantic schemas for API requests/responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP API errors.

    ``error`` repeats the human-readable message under the key clients of
    the original edge functions read (``{"error": "..."}``).
    """

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation or structured error details")
    instance: Optional[str] = Field(None, description="URI reference identifying the specific occurrence")
    error: Optional[str] = Field(None, description="Human-readable error message")
    error_code: Optional[str] = Field(None, description="Machine-readable error code")


# ============================================================================
# POST /webhooks/mercadopago
# ============================================================================


class NotificationAck(BaseModel):
    """Acknowledgement returned to the payment processor."""

    ok: bool


# ============================================================================
# POST /v1/webhooks/test
# ============================================================================


class WebhookTestResult(BaseModel):
    """Synchronous outcome of a manual test delivery."""

    success: bool
    status_code: Optional[int] = Field(None, description="HTTP status returned by the endpoint")
    response_preview: str = Field("", description="Leading characters of the response body")


# ============================================================================
# /v1/webhooks/settings
# ============================================================================


class WebhookSettingsRequest(BaseModel):
    webhook_url: str = Field(..., description="Absolute http(s) URL receiving payment events")
    is_active: bool = True


class WebhookSettingsResponse(BaseModel):
    webhook_url: str
    is_active: bool
    updated_at: datetime


# ============================================================================
# GET /v1/webhooks/logs
# ============================================================================


class WebhookLogEntry(BaseModel):
    id: int
    webhook_url: str
    event_type: str
    payload: dict[str, Any]
    response_status: Optional[int] = None
    response_body: Optional[str] = None
    success: bool
    source: str
    created_at: datetime


class WebhookLogList(BaseModel):
    items: list[WebhookLogEntry]
