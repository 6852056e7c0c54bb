"""RFC 9457 Problem Details helpers shared by routers and exception handlers."""

import logging
import uuid
from typing import Optional

from fastapi.responses import JSONResponse

from scaleturbo_api.context import request_id_var
from scaleturbo_api.schemas import ProblemDetail

PROBLEM_BASE_URI = "https://api.scaleturbo.app/problems"

_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def title_for_status(status_code: int) -> str:
    """Get human-readable title for HTTP status code."""
    return _TITLES.get(status_code, f"HTTP {status_code}")


def trace_instance() -> str:
    """Opaque instance identifier for the current request."""
    request_id = request_id_var.get()
    return f"urn:scaleturbo:trace:{request_id or uuid.uuid4()}"


def build_problem(
    status: int,
    detail: str,
    *,
    title: Optional[str] = None,
    code: Optional[str] = None,
    type_suffix: Optional[str] = None,
) -> ProblemDetail:
    suffix = type_suffix or (code.lower().replace("_", "-") if code else f"http-{status}")
    return ProblemDetail(
        type=f"{PROBLEM_BASE_URI}/{suffix}",
        title=title or title_for_status(status),
        status=status,
        detail=detail,
        instance=trace_instance(),
        error=detail,
        error_code=code,
    )


def problem_response(
    status: int,
    detail: str,
    *,
    title: Optional[str] = None,
    code: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Return an application/problem+json response."""
    problem = build_problem(status, detail, title=title, code=code)
    return JSONResponse(
        status_code=status,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )


def webhook_problem(
    status: int,
    *,
    code: str,
    title: str,
    detail: str,
    provider: str,
    logger: logging.Logger,
    extra: Optional[dict] = None,
) -> JSONResponse:
    """Log once + return Problem Details for the inbound notification endpoint.

    4xx → warning log. 5xx → error log + ``Retry-After: 60`` so the
    processor's own retry policy re-delivers the notification.
    """
    log_extra: dict = {
        "event": f"webhook.{code.lower()}",
        "provider": provider,
        "error_code": code,
    }
    if extra:
        log_extra.update(extra)

    if status >= 500:
        logger.error(code, extra=log_extra)
    else:
        logger.warning(code, extra=log_extra)

    headers = {"Retry-After": "60"} if status >= 500 else None
    return problem_response(status, detail, title=title, code=code, headers=headers)
