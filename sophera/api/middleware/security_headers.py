"""Security headers middleware for the Sophera API.

Adds browser security headers to every response:
- Content-Security-Policy
- X-Frame-Options
- X-Content-Type-Options
- Strict-Transport-Security (production only)
- Referrer-Policy
- Permissions-Policy
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sophera.infrastructure.settings import is_production


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses. The API serves JSON only."""

    def __init__(self, app):
        super().__init__(app)
        self.is_production = is_production()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # JSON API: nothing should be loaded or framed from responses
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if self.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=(), "
            "payment=(), usb=(), magnetometer=(), gyroscope=()"
        )

        # Patient data must not sit in shared caches
        response.headers.setdefault("Cache-Control", "no-store")

        return response
