"""
Saved clinical trial API endpoints.

Only the patient's own bookmarks live here; searching trial registries is
not part of this service.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from sophera.observability.logging import get_logger
from sophera.trials import SavedTrial, SavedTrialCreate, SavedTrialRepository

router = APIRouter(prefix="/api/trials/saved", tags=["trials"])
logger = get_logger(__name__)

NOT_FOUND = "Saved trial not found"


@router.get("", response_model=list[SavedTrial])
async def list_saved_trials(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[SavedTrial]:
    try:
        return SavedTrialRepository.list_by_user(user.id, limit=limit, offset=offset)
    except Exception as e:
        logger.error("Failed to list saved trials: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list saved trials") from None


@router.post("", response_model=SavedTrial, status_code=201)
async def save_trial(
    request: SavedTrialCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> SavedTrial:
    """Save a trial; saving the same trial_id again updates the stored copy."""
    try:
        return SavedTrialRepository.save(user.id, request)
    except Exception as e:
        logger.error("Failed to save trial: %s", e)
        raise HTTPException(status_code=500, detail="Failed to save trial") from None


@router.get("/{saved_id}", response_model=SavedTrial)
async def get_saved_trial(
    saved_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> SavedTrial:
    trial = SavedTrialRepository.get(saved_id, user.id)
    if trial is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return trial


@router.delete("/{saved_id}", status_code=204)
async def delete_saved_trial(
    saved_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not SavedTrialRepository.delete(saved_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)
