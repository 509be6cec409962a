"""Unit tests for user authentication

Tests cover:
- Missing and malformed authorization headers
- Google token verification (tokeninfo + userinfo, mocked transport)
- Audience check against GOOGLE_OAUTH_CLIENT_ID
- Token cache reuse
- Development identity bypass (never in production)
- Users row created on first sight
"""

from __future__ import annotations

import httpx
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from sophera.api.middleware import user_auth
from sophera.api.middleware.user_auth import (
    AuthenticatedUser,
    clear_token_cache,
    get_current_user,
)
from sophera.users.repository import UserRepository

REAL_ASYNC_CLIENT = httpx.AsyncClient


def create_test_app() -> FastAPI:
    test_app = FastAPI()

    @test_app.get("/whoami")
    async def whoami(user: AuthenticatedUser = Depends(get_current_user)):
        return {"id": user.id, "email": user.email, "name": user.name}

    return test_app


@pytest.fixture
def google(monkeypatch):
    """Route Google OAuth calls to an in-process handler; returns the request log."""
    state = {"token_status": 200, "aud": "client-abc", "requests": []}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request.url.path)
        if request.url.path == "/tokeninfo":
            return httpx.Response(state["token_status"], json={"aud": state["aud"]})
        return httpx.Response(
            200,
            json={"id": "google-42", "email": "pat@example.com", "name": "Pat"},
        )

    def client_factory(*args, **kwargs):
        return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler))

    monkeypatch.setattr(user_auth.httpx, "AsyncClient", client_factory)
    monkeypatch.setenv("GOOGLE_OAUTH_CLIENT_ID", "client-abc")
    monkeypatch.delenv("SOPHERA_DEV_USER_ID", raising=False)
    clear_token_cache()
    yield state
    clear_token_cache()


def test_rejects_missing_header(db, google):
    """Test that requests without Authorization header are rejected"""
    response = TestClient(create_test_app()).get("/whoami")

    assert response.status_code == 401
    assert "Missing authorization header" in response.json()["detail"]
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.parametrize("header", ["Basic abc123", "InvalidFormat", "Bearer a b"])
def test_rejects_malformed_header(db, google, header):
    response = TestClient(create_test_app()).get("/whoami", headers={"Authorization": header})

    assert response.status_code == 401
    assert "Invalid authorization header format" in response.json()["detail"]


def test_valid_token_resolves_user_and_creates_profile(db, google):
    client = TestClient(create_test_app())
    response = client.get("/whoami", headers={"Authorization": "Bearer good-token"})

    assert response.status_code == 200
    assert response.json() == {"id": "google-42", "email": "pat@example.com", "name": "Pat"}

    profile = UserRepository.get("google-42")
    assert profile.username == "pat@example.com"
    assert profile.display_name == "Pat"


def test_token_cache_skips_second_verification(db, google):
    client = TestClient(create_test_app())
    headers = {"Authorization": "Bearer good-token"}

    client.get("/whoami", headers=headers)
    client.get("/whoami", headers=headers)

    assert google["requests"].count("/tokeninfo") == 1


def test_invalid_token_rejected(db, google):
    google["token_status"] = 400
    response = TestClient(create_test_app()).get(
        "/whoami", headers={"Authorization": "Bearer expired"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_audience_mismatch_rejected(db, google):
    """Tokens issued to another OAuth client are refused"""
    google["aud"] = "client-abc-other"
    response = TestClient(create_test_app()).get(
        "/whoami", headers={"Authorization": "Bearer foreign"}
    )

    assert response.status_code == 401
    assert "not issued for this application" in response.json()["detail"]


def test_google_unreachable_returns_503(db, monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    monkeypatch.setattr(
        user_auth.httpx,
        "AsyncClient",
        lambda *args, **kwargs: REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler)),
    )
    monkeypatch.delenv("SOPHERA_DEV_USER_ID", raising=False)
    clear_token_cache()

    response = TestClient(create_test_app()).get(
        "/whoami", headers={"Authorization": "Bearer any"}
    )

    assert response.status_code == 503


def test_dev_user_bypass(db, monkeypatch):
    monkeypatch.setenv("SOPHERA_DEV_USER_ID", "dev-1")

    response = TestClient(create_test_app()).get("/whoami")

    assert response.status_code == 200
    assert response.json()["id"] == "dev-1"
    assert UserRepository.get("dev-1") is not None


def test_dev_user_ignored_in_production(db, google, monkeypatch):
    monkeypatch.setenv("SOPHERA_DEV_USER_ID", "dev-1")
    monkeypatch.setenv("SOPHERA_ENV", "production")

    response = TestClient(create_test_app()).get("/whoami")

    assert response.status_code == 401
