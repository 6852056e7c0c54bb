"""Session authentication for user-invoked endpoints.

Supabase JWT-based session auth.

FLOW:
1. User signs in through Supabase Auth in the dashboard -> JWT access_token
2. Dashboard calls an endpoint with Authorization: Bearer <jwt>
3. Dependency validates the JWT with Supabase (auth.get_user)
4. Returns SessionUser(user_id, email)
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from scaleturbo_api.config.settings import Settings, get_settings
from scaleturbo_api.context import user_id_var
from scaleturbo_api.problems import build_problem
from scaleturbo_api.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

# HTTPBearer scheme for session JWT
session_security = HTTPBearer(auto_error=False, description="Supabase JWT Session Token")


class SessionUser:
    """Authenticated caller."""

    def __init__(self, user_id: str, email: Optional[str] = None):
        self.user_id = user_id
        self.email = email


def _unauthorized(detail: str) -> HTTPException:
    problem = build_problem(status.HTTP_401_UNAUTHORIZED, detail, title="Unauthorized")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=problem.model_dump(exclude_none=True),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_session_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
    settings: Settings = Depends(get_settings),
) -> SessionUser:
    """Resolve the caller from a Supabase session JWT.

    Raises:
        HTTPException: 401 if the header is missing or the token is rejected
    """
    if not credentials:
        raise _unauthorized("Missing Authorization header. Please log in first.")

    try:
        supabase = get_supabase_client(settings)
        user_response = supabase.auth.get_user(credentials.credentials)
    except Exception as e:
        logger.warning(
            "Session JWT validation failed",
            extra={"event": "session.jwt.invalid", "error_type": type(e).__name__},
        )
        raise _unauthorized("Session validation failed. Please log in again.")

    if not user_response or not user_response.user:
        raise _unauthorized("Invalid or expired session token. Please log in again.")

    user = user_response.user
    user_id_var.set(str(user.id))

    logger.info(
        "Session JWT validated",
        extra={"event": "session.jwt.validated", "path": request.url.path},
    )
    return SessionUser(user_id=str(user.id), email=user.email)
