"""Pytest configuration and fixtures for Valentine tests.

Test isolation strategy:
- Every test gets its own SQLite file database created from the ORM metadata
  (foreign keys enabled), so tests needing multiple connections just open
  more sessions
- Environment is pinned per test (no settle delay, short celebration,
  no browser, no Supabase, no email)
- External collaborators are replaced by fakes from tests.helpers
"""

import sys
from collections.abc import Generator
from pathlib import Path

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from valentine.app import create_app
from valentine.config import clear_settings_cache
from valentine.db.engine import create_db_engine
from valentine.db.models import Base
from valentine.db.session import create_session_factory
from valentine.storage import FakeStorageClient
from tests.helpers import CallLog, FakeRasterizer


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path) -> str:
    """Pin environment variables for each test and return the database URL."""
    database_url = f"sqlite:///{tmp_path / 'valentine.db'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("VALENTINE_ENV", "test")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://valentine.test")
    monkeypatch.setenv("ACCEPT_SETTLE_DELAY_MS", "0")
    monkeypatch.setenv("CELEBRATION_DURATION_MS", "300")
    monkeypatch.setenv("ENABLE_SCREENSHOTS", "false")
    for name in ("SUPABASE_URL", "SUPABASE_SERVICE_KEY", "RESEND_API_KEY", "STORAGE_TEST_PREFIX"):
        monkeypatch.delenv(name, raising=False)
    return database_url


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def engine(test_env: str) -> Generator[Engine, None, None]:
    engine = create_db_engine(test_env)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()


@pytest.fixture
def fake_storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def fake_rasterizer(call_log: CallLog) -> FakeRasterizer:
    return FakeRasterizer(call_log)


@pytest.fixture
def app(session_factory, fake_storage, fake_rasterizer):
    """App wired to the per-test database and fake integrations."""
    return create_app(
        session_factory=session_factory,
        storage_client=fake_storage,
        rasterizer=fake_rasterizer,
        log_requests=False,
    )


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client; leaving the context drains running accept flows."""
    with TestClient(app) as client:
        yield client
