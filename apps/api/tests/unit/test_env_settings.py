"""Tests for environment resolution and Settings loading."""

import pytest
from pydantic import ValidationError

from scaleturbo_api.config import env
from scaleturbo_api.config.settings import load_settings

_ENV_NAMES = (
    "APP_ENV",
    "ENVIRONMENT",
    "DATABASE_URL",
    "SUPABASE_URL",
    "SB_PUBLISHABLE_KEY",
    "SUPABASE_ANON_KEY",
    "SB_SECRET_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "MERCADO_PAGO_ACCESS_TOKEN",
    "MERCADO_PAGO_API_BASE_URL",
    "LOG_LEVEL",
    "APP_JSON_LOGS",
    "CORS_ALLOWED_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_app_env_defaults_to_local():
    assert env.get_app_env() == "local"
    assert env.is_production_env() is False


def test_legacy_environment_name(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "Production")

    assert env.get_app_env() == "production"
    assert env.is_production_env() is True


def test_database_url_required_in_production(monkeypatch):
    monkeypatch.setenv("APP_ENV", "prod")

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        env.get_database_url()


def test_database_url_dev_fallback():
    assert env.get_database_url().startswith("postgresql://")


def test_canonical_supabase_keys_win_over_legacy(monkeypatch):
    monkeypatch.setenv("SB_SECRET_KEY", "new-secret")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "old-secret")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "old-anon")

    assert env.get_supabase_secret_key() == "new-secret"
    assert env.get_supabase_publishable_key() == "old-anon"


def test_cors_origins_parsing(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://app.example.com, https://admin.example.com ,")

    assert env.get_cors_allowed_origins() == ["https://app.example.com", "https://admin.example.com"]


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db.example.supabase.co:5432/postgres")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("MERCADO_PAGO_ACCESS_TOKEN", "APP_USR-123")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("APP_JSON_LOGS", "false")

    settings = load_settings()

    assert settings.database_url.startswith("postgresql://u:p@")
    assert settings.supabase_url == "https://example.supabase.co"
    assert settings.mercadopago_access_token == "APP_USR-123"
    assert settings.mercadopago_api_base_url == "https://api.mercadopago.com"
    assert settings.log_level == "DEBUG"
    assert settings.json_logs is False
    assert settings.is_production is False


def test_settings_are_immutable():
    settings = load_settings()

    with pytest.raises(ValidationError):
        settings.mercadopago_access_token = "changed"
