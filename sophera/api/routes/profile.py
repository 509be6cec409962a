"""
Profile API endpoints: the caller's patient profile and preferences.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.observability.logging import get_logger
from sophera.users import ProfileUpdate, UserNotFoundError, UserProfile, UserRepository
from sophera.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/profile", tags=["profile"])
logger = get_logger(__name__)


def _ensure_profile(user: AuthenticatedUser) -> UserProfile:
    return UserRepository.upsert(
        user.id,
        username=user.email or user.id,
        display_name=user.name,
        email=user.email or None,
    )


@router.get("", response_model=UserProfile)
async def get_profile(user: AuthenticatedUser = Depends(get_current_user)) -> UserProfile:
    """Return the caller's profile, creating it on first sight."""
    try:
        return _ensure_profile(user)
    except Exception as e:
        logger.error("Failed to load profile: %s", e)
        raise HTTPException(status_code=500, detail="Failed to load profile") from None


@router.patch("", response_model=UserProfile)
async def update_profile(
    request: ProfileUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> UserProfile:
    try:
        _ensure_profile(user)
        return UserRepository.update_profile(user.id, request)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="Profile not found") from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update profile: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update profile") from None


@router.patch("/preferences", response_model=UserProfile)
async def update_preferences(
    preferences: dict[str, Any] = Body(...),
    user: AuthenticatedUser = Depends(get_current_user),
) -> UserProfile:
    """Shallow-merge the posted keys into the stored preferences."""
    try:
        _ensure_profile(user)
        return UserRepository.update_preferences(user.id, preferences)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="Profile not found") from None
    except Exception as e:
        logger.error("Failed to update preferences: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update preferences") from None
