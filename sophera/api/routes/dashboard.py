"""
Dashboard endpoint: profile, recent records, upcoming plan items and stats.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.dashboard import Dashboard, build_dashboard
from sophera.observability.logging import get_logger

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])
logger = get_logger(__name__)


@router.get("", response_model=Dashboard)
async def get_dashboard(user: AuthenticatedUser = Depends(get_current_user)) -> Dashboard:
    try:
        return build_dashboard(user.id)
    except Exception as e:
        logger.error("Failed to build dashboard: %s", e)
        raise HTTPException(status_code=500, detail="Failed to build dashboard") from None
