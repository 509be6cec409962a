"""
Assistant routing endpoint: which model and query type a message would get.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.assistant.models import RouteRequest
from sophera.assistant.router import RoutingDecision, determine_model_for_query

router = APIRouter(prefix="/api/assistant", tags=["assistant"])


@router.post("/route", response_model=RoutingDecision)
async def route_query(
    request: RouteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> RoutingDecision:
    """Routing decision only; no LLM call is made."""
    return determine_model_for_query(request.query)
