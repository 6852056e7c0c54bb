"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from scaleturbo_api import __version__
from scaleturbo_api.db.session import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    services: dict[str, str]


def check_database(db: Session) -> str:
    """Check database connectivity.

    Returns:
        str: "up" if healthy, error message otherwise
    """
    try:
        db.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return f"down: {str(e)[:50]}"


@router.get("/health", response_model=HealthResponse)
async def health_check(response: Response, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint.

    Returns 503 with status "degraded" when the database is unreachable.
    """
    services = {"api": "up", "database": check_database(db)}

    if any(svc_status.startswith("down") for svc_status in services.values()):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="degraded", version=__version__, services=services)

    return HealthResponse(status="healthy", version=__version__, services=services)
