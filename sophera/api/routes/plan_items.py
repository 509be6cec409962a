"""
Plan item API endpoints.

Completion is toggled through POST /{id}/complete rather than PUT so that
completed_at is stamped and cleared in one place.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX, API_UPCOMING_DAYS_DEFAULT
from sophera.observability.logging import get_logger
from sophera.plan import PlanItem, PlanItemCreate, PlanItemRepository, PlanItemUpdate
from sophera.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/plan-items", tags=["plan"])
logger = get_logger(__name__)

NOT_FOUND = "Plan item not found"


class CompletionRequest(BaseModel):
    is_completed: bool = True


@router.get("", response_model=list[PlanItem])
async def list_plan_items(
    user: AuthenticatedUser = Depends(get_current_user),
    include_completed: bool = Query(True),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[PlanItem]:
    """List plan items by due date, undated items last."""
    try:
        return PlanItemRepository.list_by_user(
            user.id, include_completed=include_completed, limit=limit, offset=offset
        )
    except Exception as e:
        logger.error("Failed to list plan items: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list plan items") from None


@router.get("/upcoming", response_model=list[PlanItem])
async def list_upcoming_plan_items(
    user: AuthenticatedUser = Depends(get_current_user),
    days: int = Query(API_UPCOMING_DAYS_DEFAULT, ge=1, le=90, description="Days to look ahead"),
) -> list[PlanItem]:
    """Incomplete items due within the window, overdue items included."""
    try:
        return PlanItemRepository.upcoming(user.id, days=days)
    except Exception as e:
        logger.error("Failed to list upcoming plan items: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list upcoming plan items") from None


@router.post("", response_model=PlanItem, status_code=201)
async def create_plan_item(
    request: PlanItemCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> PlanItem:
    try:
        return PlanItemRepository.create(user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to create plan item: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create plan item") from None


@router.get("/{item_id}", response_model=PlanItem)
async def get_plan_item(
    item_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> PlanItem:
    item = PlanItemRepository.get(item_id, user.id)
    if item is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return item


@router.put("/{item_id}", response_model=PlanItem)
async def update_plan_item(
    item_id: str,
    request: PlanItemUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> PlanItem:
    try:
        item = PlanItemRepository.update(item_id, user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update plan item: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update plan item") from None

    if item is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return item


@router.post("/{item_id}/complete", response_model=PlanItem)
async def set_plan_item_completion(
    item_id: str,
    request: CompletionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> PlanItem:
    try:
        item = PlanItemRepository.set_completion(item_id, user.id, request.is_completed)
    except Exception as e:
        logger.error("Failed to update plan item completion: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update completion") from None

    if item is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    logger.info("Plan item %s completed=%s", item_id, request.is_completed)
    return item


@router.delete("/{item_id}", status_code=204)
async def delete_plan_item(
    item_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not PlanItemRepository.delete(item_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)
