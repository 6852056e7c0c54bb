"""Application settings.

Process-wide credentials and endpoints are resolved once at startup into an
immutable Settings value. Components receive it through FastAPI dependencies
(``Depends(get_settings)``) instead of reading the environment themselves.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from scaleturbo_api.config import env


class Settings(BaseModel):
    """Immutable runtime configuration."""

    model_config = ConfigDict(frozen=True)

    app_env: str = "local"
    database_url: str

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    mercadopago_access_token: Optional[str] = None
    mercadopago_api_base_url: str = "https://api.mercadopago.com"
    mercadopago_timeout_seconds: float = 30.0

    log_level: str = "INFO"
    json_logs: bool = True
    cors_allowed_origins: list[str] = Field(default_factory=list)

    # Delivery log keeps a bounded prefix of the endpoint's response body
    webhook_response_body_limit: int = Field(default=1000, ge=0)
    # Manual test trigger returns a shorter preview to the caller
    webhook_preview_limit: int = Field(default=200, ge=0)
    # None: no client-side timeout; the platform request deadline applies
    webhook_timeout_seconds: Optional[float] = None

    @property
    def is_production(self) -> bool:
        return self.app_env in {"prod", "production"}


def load_settings() -> Settings:
    """Build Settings from the process environment."""
    return Settings(
        app_env=env.get_app_env(),
        database_url=env.get_database_url(),
        supabase_url=env.get_supabase_url(),
        supabase_anon_key=env.get_supabase_publishable_key(),
        supabase_service_role_key=env.get_supabase_secret_key(),
        mercadopago_access_token=env.get_mercadopago_access_token(),
        mercadopago_api_base_url=os.getenv(
            "MERCADO_PAGO_API_BASE_URL", "https://api.mercadopago.com"
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        json_logs=os.getenv("APP_JSON_LOGS", "true").lower() != "false",
        cors_allowed_origins=env.get_cors_allowed_origins(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide Settings instance (FastAPI dependency; override in tests)."""
    return load_settings()
