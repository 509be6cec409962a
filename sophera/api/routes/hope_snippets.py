"""
Hope snippet API endpoints.

Shared snippets (user_id NULL) are visible to everyone and read-only;
callers can create, edit and delete only their own.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, field_validator

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.assistant.types import QueryType
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from sophera.hope import (
    HopeCategory,
    HopeResponse,
    HopeSnippet,
    HopeSnippetCreate,
    HopeSnippetRepository,
    HopeSnippetUpdate,
)
from sophera.hope.service import (
    DEFAULT_SUPPORT_MESSAGE,
    ERROR_SUPPORT_MESSAGE,
    analyze_hope_query,
    generate_hope_message,
)
from sophera.infrastructure.llm_budget import (
    BudgetExceededError,
    ensure_budget,
    record_llm_call,
)
from sophera.observability.logging import get_logger
from sophera.utils.error_sanitizer import sanitize_error_message
from sophera.utils.validators import require_text

router = APIRouter(prefix="/api/hope-snippets", tags=["hope"])
logger = get_logger(__name__)

NOT_FOUND = "Hope snippet not found"


class HopeMessageRequest(BaseModel):
    query: str

    @field_validator("query")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return require_text(v, "query")


@router.get("", response_model=list[HopeSnippet])
async def list_hope_snippets(
    user: AuthenticatedUser = Depends(get_current_user),
    category: HopeCategory | None = Query(None),
    include_inactive: bool = Query(False),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[HopeSnippet]:
    """Own snippets first, then shared ones."""
    try:
        return HopeSnippetRepository.list_visible(
            user.id,
            category=category.value if category else None,
            include_inactive=include_inactive,
            limit=limit,
            offset=offset,
        )
    except Exception as e:
        logger.error("Failed to list hope snippets: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list hope snippets") from None


@router.get("/random", response_model=HopeSnippet)
async def random_hope_snippet(
    user: AuthenticatedUser = Depends(get_current_user),
    category: HopeCategory | None = Query(None),
) -> HopeSnippet:
    snippet = HopeSnippetRepository.random(user.id, category=category.value if category else None)
    if snippet is None:
        raise HTTPException(status_code=404, detail="No hope snippets available")
    return snippet


@router.post("/message", response_model=HopeResponse)
async def hope_message(
    request: HopeMessageRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> HopeResponse:
    """
    A message of hope for the query: a matching snippet when one exists,
    otherwise a short generated or fixed supportive message.
    """
    query_type = analyze_hope_query(request.query) or QueryType.HOPE
    try:
        ensure_budget(user.id)
    except BudgetExceededError:
        raise HTTPException(status_code=429, detail="Daily AI usage limit reached") from None

    response = generate_hope_message(user.id, request.query, query_type)

    fixed = (DEFAULT_SUPPORT_MESSAGE, ERROR_SUPPORT_MESSAGE)
    if response.is_custom_generated and response.content not in fixed:
        record_llm_call(user.id, "hope")
    return response


@router.post("", response_model=HopeSnippet, status_code=201)
async def create_hope_snippet(
    request: HopeSnippetCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> HopeSnippet:
    try:
        return HopeSnippetRepository.create(user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to create hope snippet: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create hope snippet") from None


@router.get("/{snippet_id}", response_model=HopeSnippet)
async def get_hope_snippet(
    snippet_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> HopeSnippet:
    snippet = HopeSnippetRepository.get_visible(snippet_id, user.id)
    if snippet is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return snippet


@router.put("/{snippet_id}", response_model=HopeSnippet)
async def update_hope_snippet(
    snippet_id: str,
    request: HopeSnippetUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> HopeSnippet:
    try:
        snippet = HopeSnippetRepository.update(snippet_id, user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update hope snippet: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update hope snippet") from None

    if snippet is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return snippet


@router.delete("/{snippet_id}", status_code=204)
async def delete_hope_snippet(
    snippet_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not HopeSnippetRepository.delete(snippet_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)
