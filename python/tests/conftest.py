"""Pytest configuration and fixtures for the comments API tests.

Test isolation strategy:
- Every test gets its own SQLite database file under tmp_path, with the
  schema created from the ORM metadata
- Settings come from environment variables set per test; the settings
  cache is cleared around each test
- The app is built with the dev identity provider and a short-lived
  session token service; get_db is overridden to use the test database
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from spotcomments.api.deps import get_db
from spotcomments.app import add_request_id_middleware, create_app
from spotcomments.auth.session_token import SessionTokenService
from spotcomments.config import clear_settings_cache
from spotcomments.db.engine import create_db_engine
from spotcomments.db.models import Base
from spotcomments.db.session import create_session_factory
from spotcomments.identity.providers import DevIdentityProvider
from tests.helpers import TEST_SESSION_TTL_SECONDS, TEST_SIGNING_SECRET

PRIVY_ENV_VARS = (
    "PRIVY_APP_ID",
    "PRIVY_APP_SECRET",
    "PRIVY_VERIFICATION_KEY",
    "PRIVY_JWKS_URL",
    "PRIVY_API_BASE_URL",
)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'comments.db'}"


@pytest.fixture(autouse=True)
def test_env(monkeypatch, database_url) -> Generator[None, None, None]:
    """Point settings at the per-test database and dev identity mode."""
    monkeypatch.setenv("SPOTCOMMENTS_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("SESSION_SIGNING_SECRET", TEST_SIGNING_SECRET)
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    for var in PRIVY_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def engine(database_url) -> Generator[Engine, None, None]:
    """Engine for the per-test database with the schema created."""
    engine = create_db_engine(database_url)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_tokens() -> SessionTokenService:
    return SessionTokenService(secret=TEST_SIGNING_SECRET, ttl_seconds=TEST_SESSION_TTL_SECONDS)


@pytest.fixture
def app(session_factory, session_tokens):
    """App wired to the test database, dev identity provider, request-id middleware."""
    app = create_app(identity_provider=DevIdentityProvider(), session_tokens=session_tokens)
    add_request_id_middleware(app, log_requests=False)

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
