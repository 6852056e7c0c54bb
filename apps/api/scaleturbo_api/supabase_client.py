"""Supabase client construction.

SECURITY NOTICE:
- The secret (service role) key is server-only and bypasses RLS. It is used
  for the account directory lookup (auth.admin) only.
- The publishable (anon) key respects RLS and is used to validate session
  JWTs (auth.get_user).

Keys come from the injected Settings; see config/env.py for the env names
(SB_PUBLISHABLE_KEY / SB_SECRET_KEY with legacy SUPABASE_ANON_KEY /
SUPABASE_SERVICE_ROLE_KEY fallbacks).
"""

import logging
from functools import lru_cache

from supabase import Client, create_client

from scaleturbo_api.config.settings import Settings

logger = logging.getLogger(__name__)


def _require(value: str | None, name: str) -> str:
    if not value:
        raise RuntimeError(
            f"{name} is not configured. Set it in environment configuration."
        )
    return value


@lru_cache(maxsize=4)
def _create_cached_client(url: str, key: str, key_type: str) -> Client:
    # Log initialization (without exposing keys)
    logger.info(
        "Initializing Supabase client",
        extra={"event": "supabase.client.init", "supabase_url": url, "key_type": key_type},
    )
    return create_client(url, key)


def get_supabase_client(settings: Settings) -> Client:
    """Supabase client using the publishable key (respects RLS).

    Raises:
        RuntimeError: If SUPABASE_URL or the publishable key is not set
    """
    url = _require(settings.supabase_url, "SUPABASE_URL")
    key = _require(settings.supabase_anon_key, "SB_PUBLISHABLE_KEY")
    return _create_cached_client(url, key, "publishable")


def get_supabase_admin_client(settings: Settings) -> Client:
    """Supabase admin client using the secret key (bypasses RLS).

    Raises:
        RuntimeError: If SUPABASE_URL or the secret key is not set
    """
    url = _require(settings.supabase_url, "SUPABASE_URL")
    key = _require(settings.supabase_service_role_key, "SB_SECRET_KEY")
    return _create_cached_client(url, key, "secret")
