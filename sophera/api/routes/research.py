"""
Saved research API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from sophera.observability.logging import get_logger
from sophera.research import ResearchItem, ResearchItemCreate, ResearchItemRepository

router = APIRouter(prefix="/api/research", tags=["research"])
logger = get_logger(__name__)

NOT_FOUND = "Research item not found"


@router.get("", response_model=list[ResearchItem])
async def list_research_items(
    user: AuthenticatedUser = Depends(get_current_user),
    source_type: str | None = Query(None, description="e.g. pubmed, book, clinical_trial"),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[ResearchItem]:
    """List saved research, most recently saved first."""
    try:
        return ResearchItemRepository.list_by_user(
            user.id, source_type=source_type, limit=limit, offset=offset
        )
    except Exception as e:
        logger.error("Failed to list research items: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list research items") from None


@router.post("", response_model=ResearchItem, status_code=201)
async def create_research_item(
    request: ResearchItemCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> ResearchItem:
    try:
        return ResearchItemRepository.create(user.id, request)
    except Exception as e:
        logger.error("Failed to save research item: %s", e)
        raise HTTPException(status_code=500, detail="Failed to save research item") from None


@router.get("/{item_id}", response_model=ResearchItem)
async def get_research_item(
    item_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> ResearchItem:
    item = ResearchItemRepository.get(item_id, user.id)
    if item is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return item


@router.delete("/{item_id}", status_code=204)
async def delete_research_item(
    item_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not ResearchItemRepository.delete(item_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)
