"""ScaleTurbo API - FastAPI Application Entry Point."""

import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from scaleturbo_api import __version__
from scaleturbo_api.config.settings import Settings, get_settings
from scaleturbo_api.context import request_id_var, user_id_var
from scaleturbo_api.problems import PROBLEM_BASE_URI, build_problem, title_for_status, trace_instance
from scaleturbo_api.routers import health, payments, webhook_settings
from scaleturbo_api.schemas import ProblemDetail
from scaleturbo_api.utils import configure_json_logging

logger = logging.getLogger(__name__)


# ============================================================================
# RFC 9457 Exception Handlers
# ============================================================================


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP exceptions as application/problem+json.

    A dict detail that is already a problem document (raised by auth
    dependencies) is returned as-is; anything else is wrapped.
    """
    if isinstance(exc.detail, dict) and "type" in exc.detail and "status" in exc.detail:
        content = exc.detail
    else:
        detail_value = exc.detail if exc.detail is not None else title_for_status(exc.status_code)
        problem = ProblemDetail(
            type=f"{PROBLEM_BASE_URI}/http-{exc.status_code}",
            title=title_for_status(exc.status_code),
            status=exc.status_code,
            detail=detail_value,
            instance=trace_instance(),
            error=detail_value if isinstance(detail_value, str) else None,
        )
        content = problem.model_dump(exclude_none=True)

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        media_type="application/problem+json",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Returns 422 Unprocessable Entity with application/problem+json."""
    first_error = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")

    problem = build_problem(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        f"Invalid field '{field}': {msg}",
        title="Request Validation Failed",
        type_suffix="validation-error",
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Uncaught exceptions → 500 problem+json (details stay in the logs)."""
    logger.error(f"Unhandled exception: {type(exc).__name__}", exc_info=True)

    problem = build_problem(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        title="Internal Server Error",
        type_suffix="internal-error",
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


# ============================================================================
# Application Factory
# ============================================================================


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Explicit settings (tests); defaults to the process-wide
            instance from the environment. When given, it is also installed
            as the ``get_settings`` dependency override.

    Returns:
        Configured FastAPI application instance
    """
    explicit_settings = settings is not None
    settings = settings or get_settings()

    # Set APP_JSON_LOGS=false to keep the default (plain) handlers
    if settings.json_logs:
        configure_json_logging(log_level=settings.log_level)
        logger.info("Structured JSON logging enabled")

    new_app = FastAPI(
        title="ScaleTurbo API",
        description="Payment notification receiver and user webhook delivery.",
        version=__version__,
        docs_url="/api-docs",
        redoc_url="/redoc",
    )

    if explicit_settings:
        new_app.dependency_overrides[get_settings] = lambda: settings

    new_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Client-Info", "apikey"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    new_app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    new_app.add_exception_handler(RequestValidationError, validation_exception_handler)
    new_app.add_exception_handler(Exception, general_exception_handler)

    new_app.include_router(health.router, tags=["health"])
    new_app.include_router(payments.router)
    new_app.include_router(webhook_settings.router)

    # Completion logging middleware (inner)
    @new_app.middleware("http")
    async def completion_logging_mw(request: Request, call_next):
        """Every HTTP request emits "http.request.completed", even on exceptions."""
        user_id_var.set("")

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "http.request.completed",
                extra={
                    "event": "http.request.completed",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            user_id_var.set("")

    # Request ID middleware (outermost for context propagation)
    @new_app.middleware("http")
    async def request_id_mw(request: Request, call_next):
        """Accept X-Request-ID from the caller or mint one; echo it back."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_var.set(request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    return new_app


app = create_app()
