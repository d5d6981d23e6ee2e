"""
Hub Test Configuration

Shared fixtures for all tests: an in-memory database, a test config,
bearer tokens and a few profiles.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import common.config as config_mod
import common.db.database as database_mod
from common.config import AIGatewayConfig, AuthConfig, CalComConfig, HubConfig, SpeechConfig
from common.db.models import Base, Profile
from tests.fixtures.hub import JWT_SECRET, SERVICE_KEY, add_user, make_token


# =============================================================================
# FIXTURES: Config & Database
# =============================================================================

@pytest.fixture(autouse=True)
def hub_config(monkeypatch) -> HubConfig:
    """Test config with known secrets, installed as the shared config."""
    config = HubConfig(
        auth=AuthConfig(
            jwt_secret=JWT_SECRET,
            admin_url="https://auth.test/auth/v1",
            service_role_key=SERVICE_KEY,
        ),
        ai=AIGatewayConfig(api_key="test-ai-key"),
        calcom=CalComConfig(api_key="test-cal-key"),
        speech=SpeechConfig(api_key="test-speech-key"),
    )
    monkeypatch.setattr(config_mod, "_config", config)
    return config


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    """Session factory installed as the shared one (used by get_db and get_session)."""
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    monkeypatch.setattr(database_mod, "_engine", engine)
    monkeypatch.setattr(database_mod, "_session_factory", factory)
    return factory


@pytest.fixture
def db(session_factory):
    """Session for arranging and inspecting data."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


# =============================================================================
# FIXTURES: Users & Tokens
# =============================================================================

@pytest.fixture
def admin(db) -> Profile:
    return add_user(db, "admin-1", "rafa@boranaobra.com.br", role="admin", full_name="Rafa Admin")


@pytest.fixture
def collaborator(db) -> Profile:
    return add_user(db, "collab-1", "alex@boranaobra.com.br", full_name="Alex Colaborador")


@pytest.fixture
def admin_headers(admin) -> dict:
    return {"Authorization": f"Bearer {make_token(admin.id, admin.email)}"}


@pytest.fixture
def collaborator_headers(collaborator) -> dict:
    return {"Authorization": f"Bearer {make_token(collaborator.id, collaborator.email)}"}


@pytest.fixture
def service_headers() -> dict:
    return {"Authorization": f"Bearer {SERVICE_KEY}"}
