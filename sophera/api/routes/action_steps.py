"""
Personalized action step endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.assistant.action_steps import (
    DEFAULT_ACTION_STEPS,
    build_user_context,
    personalized_action_steps,
)
from sophera.assistant.models import ActionStep
from sophera.infrastructure.llm_budget import check_budget, record_llm_call
from sophera.observability.logging import get_logger

router = APIRouter(prefix="/api/action-steps", tags=["assistant"])
logger = get_logger(__name__)


@router.get("", response_model=list[ActionStep])
async def get_action_steps(user: AuthenticatedUser = Depends(get_current_user)) -> list[ActionStep]:
    """
    Up to four next steps for the caller.

    Over budget, the default steps are returned instead of an error.
    """
    if not check_budget(user.id).is_allowed:
        logger.info("LLM budget exhausted, serving default action steps")
        return list(DEFAULT_ACTION_STEPS)

    try:
        steps = personalized_action_steps(build_user_context(user.id))
    except Exception as e:
        logger.error("Failed to build action steps: %s", e)
        raise HTTPException(status_code=500, detail="Failed to build action steps") from None

    if steps != list(DEFAULT_ACTION_STEPS):
        record_llm_call(user.id, "action_steps")
    return steps
