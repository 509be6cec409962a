"""
User authentication for the Sophera API.

Verifies Google OAuth access tokens sent by the web client and resolves the
caller's identity. Every authenticated caller gets a users row on first
sight so profile, dashboard and chat have somewhere to hang their data.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import httpx
from cachetools import TTLCache
from fastapi import HTTPException, Request, status

from sophera.infrastructure.settings import is_production
from sophera.observability.logging import get_logger
from sophera.users.repository import UserRepository

logger = get_logger(__name__)

GOOGLE_TOKEN_INFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

_CACHE_MAX_SIZE = 1000
# Shorter than Google's 1 hour token lifetime so revoked tokens age out
_CACHE_TTL_SECONDS = 600


@dataclass
class AuthenticatedUser:
    """Caller identity resolved from a bearer token."""

    id: str
    email: str
    name: str | None = None
    picture: str | None = None

    def __str__(self) -> str:
        return f"User({self.id})"


_token_cache: TTLCache[str, AuthenticatedUser] = TTLCache(
    maxsize=_CACHE_MAX_SIZE, ttl=_CACHE_TTL_SECONDS
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_google_token(token: str) -> AuthenticatedUser:
    """
    Verify a Google OAuth access token and return the user it belongs to.

    Raises:
        HTTPException: 401 for invalid tokens, 503 when Google is unreachable,
            500 when the OAuth client id is missing in production
    """
    if token in _token_cache:
        return _token_cache[token]

    async with httpx.AsyncClient() as client:
        try:
            token_response = await client.get(
                GOOGLE_TOKEN_INFO_URL,
                params={"access_token": token},
                timeout=10.0,
            )
        except httpx.TimeoutException:
            logger.warning("Token validation timed out")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from None
        except httpx.RequestError as e:
            logger.error("Token validation request failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from e

        if token_response.status_code != 200:
            logger.warning("Invalid token (status %d)", token_response.status_code)
            raise _unauthorized("Invalid or expired token")

        token_info = token_response.json()

        expected_client_id = os.getenv("GOOGLE_OAUTH_CLIENT_ID")
        if not expected_client_id and is_production():
            logger.error("GOOGLE_OAUTH_CLIENT_ID not configured in production")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server misconfiguration: OAuth client ID not set",
            )

        if expected_client_id:
            # Exact match; a substring check would accept other apps' tokens
            if token_info.get("aud", "") != expected_client_id:
                logger.warning("Token audience mismatch")
                raise _unauthorized("Token not issued for this application")
        else:
            logger.warning("GOOGLE_OAUTH_CLIENT_ID not set, skipping audience check")

        try:
            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {token}"},
                timeout=10.0,
            )
        except (httpx.TimeoutException, httpx.RequestError) as e:
            logger.error("Failed to get user info: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Failed to retrieve user information",
            ) from e

        if userinfo_response.status_code != 200:
            logger.warning("User info lookup failed (status %d)", userinfo_response.status_code)
            raise _unauthorized("Failed to retrieve user information")

        userinfo = userinfo_response.json()

    user = AuthenticatedUser(
        id=userinfo["id"],
        email=userinfo.get("email", ""),
        name=userinfo.get("name"),
        picture=userinfo.get("picture"),
    )
    _token_cache[token] = user

    logger.info("Authenticated %s (cache size: %d)", user, len(_token_cache))
    return user


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise _unauthorized("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    return parts[1]


def _dev_user() -> AuthenticatedUser | None:
    """Fixed identity from SOPHERA_DEV_USER_ID, never honored in production."""
    dev_user_id = os.getenv("SOPHERA_DEV_USER_ID")
    if not dev_user_id or is_production():
        return None
    return AuthenticatedUser(id=dev_user_id, email=f"{dev_user_id}@localhost", name="Developer")


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    FastAPI dependency resolving the caller.

    Usage:
        @router.get("/api/journal-logs")
        def list_logs(user: AuthenticatedUser = Depends(get_current_user)):
            ...

    Side Effects:
        - Creates the caller's users row on first sight
    """
    user = _dev_user()
    if user is None:
        token = _extract_bearer_token(request.headers.get("Authorization"))
        user = await verify_google_token(token)

    if UserRepository.get(user.id) is None:
        UserRepository.upsert(
            user.id,
            username=user.email or user.id,
            display_name=user.name,
            email=user.email or None,
        )
    return user


def clear_token_cache() -> None:
    """Clear the token cache. Useful for testing."""
    _token_cache.clear()
