"""Unit tests for rate limiting middleware

Tests cover:
- Requests under limit allowed
- Minute and hour limit enforcement
- Health endpoint bypass
- Per-IP isolation behind the Cloud Run proxy
- Forwarded headers ignored without the proxy marker
- CORS headers on 429 responses for allowed origins
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sophera.api.middleware.rate_limit import RateLimitMiddleware

PROXY = {"X-Cloud-Trace-Context": "trace/1"}


def create_test_app(per_minute: int = 5, per_hour: int = 20) -> FastAPI:
    test_app = FastAPI()
    test_app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=per_minute,
        requests_per_hour=per_hour,
        allowed_origins=["http://localhost:5173"],
    )

    @test_app.get("/api/test")
    async def test_endpoint():
        return {"status": "ok"}

    @test_app.get("/health")
    async def health():
        return {"status": "healthy"}

    return test_app


@pytest.fixture
def app():
    return create_test_app()


def test_requests_under_limit_allowed(app):
    """Requests under the limit pass and carry rate limit headers"""
    client = TestClient(app)

    for _ in range(3):
        response = client.get("/api/test")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit-Minute"] == "5"
        assert "X-RateLimit-Remaining-Minute" in response.headers


def test_minute_limit_enforced(app):
    client = TestClient(app)

    for _ in range(5):
        assert client.get("/api/test").status_code == 200

    response = client.get("/api/test")
    assert response.status_code == 429
    assert "per minute" in response.json()["detail"]
    assert response.json()["retry_after"] == 60
    assert response.headers["Retry-After"] == "60"


def test_hour_limit_enforced():
    client = TestClient(create_test_app(per_minute=100, per_hour=3))

    for _ in range(3):
        assert client.get("/api/test").status_code == 200

    response = client.get("/api/test")
    assert response.status_code == 429
    assert "per hour" in response.json()["detail"]
    assert response.headers["Retry-After"] == "3600"


def test_health_endpoints_bypass_rate_limit(app):
    client = TestClient(app)
    for _ in range(6):
        client.get("/api/test")

    response = client.get("/health")
    assert response.status_code == 200
    assert "X-RateLimit-Limit-Minute" not in response.headers


def test_per_ip_isolation_behind_proxy(app):
    """Behind Cloud Run each forwarded client IP gets its own bucket"""
    client = TestClient(app)
    first = {**PROXY, "X-Forwarded-For": "192.168.1.1"}
    second = {**PROXY, "X-Forwarded-For": "192.168.1.2"}

    for _ in range(5):
        assert client.get("/api/test", headers=first).status_code == 200
    assert client.get("/api/test", headers=first).status_code == 429

    assert client.get("/api/test", headers=second).status_code == 200


def test_forwarded_for_ignored_without_proxy_marker(app):
    """A spoofed X-Forwarded-For cannot escape the limit outside the proxy"""
    client = TestClient(app)

    for index in range(5):
        headers = {"X-Forwarded-For": f"10.0.0.{index}"}
        assert client.get("/api/test", headers=headers).status_code == 200

    response = client.get("/api/test", headers={"X-Forwarded-For": "10.0.0.99"})
    assert response.status_code == 429


def test_invalid_forwarded_ip_falls_back_to_socket_address(app):
    client = TestClient(app)
    headers = {**PROXY, "X-Forwarded-For": "not-an-ip"}

    for _ in range(5):
        assert client.get("/api/test", headers=headers).status_code == 200
    # Same socket address, so the plain request shares the exhausted bucket
    assert client.get("/api/test").status_code == 429


def test_rate_limit_headers_accuracy(app):
    client = TestClient(app)

    response = client.get("/api/test")
    assert response.headers["X-RateLimit-Remaining-Minute"] == "4"
    assert response.headers["X-RateLimit-Remaining-Hour"] == "19"

    response = client.get("/api/test")
    assert response.headers["X-RateLimit-Remaining-Minute"] == "3"
    assert response.headers["X-RateLimit-Remaining-Hour"] == "18"


def test_rejection_carries_cors_headers_for_allowed_origin(app):
    client = TestClient(app)
    origin = {"Origin": "http://localhost:5173"}
    for _ in range(5):
        client.get("/api/test", headers=origin)

    response = client.get("/api/test", headers=origin)
    assert response.status_code == 429
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"


def test_rejection_omits_cors_headers_for_unknown_origin(app):
    client = TestClient(app)
    origin = {"Origin": "https://evil.example"}
    for _ in range(5):
        client.get("/api/test", headers=origin)

    response = client.get("/api/test", headers=origin)
    assert response.status_code == 429
    assert "Access-Control-Allow-Origin" not in response.headers
