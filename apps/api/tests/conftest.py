"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api
sys.path.insert(0, str(Path(__file__).resolve().parent))  # => .../apps/api/tests

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from scaleturbo_api.auth.session_auth import SessionUser, get_session_user
from scaleturbo_api.config.settings import Settings
from scaleturbo_api.db.engine import build_engine, build_sessionmaker
from scaleturbo_api.db.models import Base
from scaleturbo_api.db.session import get_db
from scaleturbo_api.main import create_app
from scaleturbo_api.webhooks.dispatcher import get_webhook_transport
from webhook_helpers import (
    MP_BASE_URL,
    MP_TEST_TOKEN,
    SESSION_USER_EMAIL,
    SESSION_USER_ID,
    FakeEndpoint,
)

TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        database_url=TEST_DATABASE_URL,
        supabase_url="https://project.supabase.test",
        supabase_anon_key="anon-key",
        supabase_service_role_key="service-role-key",
        mercadopago_access_token=MP_TEST_TOKEN,
        mercadopago_api_base_url=MP_BASE_URL,
        json_logs=False,
        cors_allowed_origins=["http://localhost:3000"],
    )


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh in-memory SQLite database for each test."""
    engine = build_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(engine)

    session = build_sessionmaker(engine)()
    try:
        yield session
        session.rollback()
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def endpoint() -> FakeEndpoint:
    """The user's webhook endpoint (200 by default)."""
    return FakeEndpoint()


@pytest.fixture
def app(settings: Settings, db_session: Session, endpoint: FakeEndpoint):
    """Application wired to the test database and the fake endpoint."""
    application = create_app(settings)

    def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_webhook_transport] = lambda: endpoint.transport
    return application


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def authed_client(app) -> TestClient:
    """Client whose requests are authenticated as SESSION_USER_ID."""
    app.dependency_overrides[get_session_user] = lambda: SessionUser(
        user_id=SESSION_USER_ID, email=SESSION_USER_EMAIL
    )
    with TestClient(app) as test_client:
        yield test_client
