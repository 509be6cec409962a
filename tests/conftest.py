"""
Pytest configuration for Sophera tests

Every test gets its own SQLite database under tmp_path. API tests talk to the
real FastAPI app through TestClient with authentication overridden, and no
test reaches an LLM provider or Google's token endpoints.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment is fixed up before any
# sophera module loads. Importing the app initializes this throwaway database.
os.environ["SOPHERA_ENV"] = "test"
os.environ["SOPHERA_DB_PATH"] = str(Path(tempfile.mkdtemp(prefix="sophera-test-")) / "boot.db")
os.environ["SOPHERA_RATE_LIMIT_RPM"] = "100000"
os.environ["SOPHERA_RATE_LIMIT_RPH"] = "1000000"
os.environ.pop("SOPHERA_DEV_USER_ID", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user  # noqa: E402
from sophera.infrastructure.database import init_database, reset_pool  # noqa: E402
from sophera.observability.telemetry import reset_counters, reset_latencies  # noqa: E402

TEST_USER_ID = "user-test-1"
OTHER_USER_ID = "user-test-2"

PROVIDER_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "GOOGLE_API_KEY",
    "GOOGLE_CLOUD_PROJECT",
)


@pytest.fixture(autouse=True)
def no_llm_credentials(monkeypatch):
    """Start every test with no provider configured; tests opt in explicitly."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_counters()
    reset_latencies()


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh, initialized database for one test."""
    db_path = tmp_path / "sophera.db"
    monkeypatch.setenv("SOPHERA_DB_PATH", str(db_path))
    reset_pool()
    init_database()
    yield db_path
    reset_pool()


@pytest.fixture
def login():
    """Switch the identity get_current_user resolves to."""
    from sophera.api.app import app

    def _login(user_id: str, name: str | None = None) -> AuthenticatedUser:
        user = AuthenticatedUser(id=user_id, email=f"{user_id}@example.com", name=name)
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def client(db, login):
    """TestClient logged in as TEST_USER_ID."""
    from sophera.api.app import app

    login(TEST_USER_ID, name="Test Patient")
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def with_provider(monkeypatch):
    """Pretend one provider has credentials: with_provider("ANTHROPIC_API_KEY")."""

    def _enable(env_var: str = "ANTHROPIC_API_KEY") -> None:
        monkeypatch.setenv(env_var, "test-credential")

    return _enable
