"""
Treatment timeline endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.infrastructure.llm_budget import BudgetExceededError, ensure_budget, record_llm_call
from sophera.observability.logging import get_logger
from sophera.timeline import TimelineGenerationError, TreatmentTimeline, generate_timeline
from sophera.timeline.models import TimelineRequest

router = APIRouter(prefix="/api/timeline", tags=["timeline"])
logger = get_logger(__name__)


@router.post("", response_model=TreatmentTimeline)
async def create_timeline(
    request: TimelineRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> TreatmentTimeline:
    """
    Generate a phase-by-phase timeline for a named treatment.

    Returns 502 when the model output cannot be turned into a timeline.
    """
    try:
        ensure_budget(user.id)
    except BudgetExceededError:
        raise HTTPException(status_code=429, detail="Daily AI usage limit reached") from None

    try:
        timeline = generate_timeline(request.treatment_name, request.patient_factors)
    except TimelineGenerationError as e:
        logger.warning("Timeline generation failed: %s", e)
        raise HTTPException(
            status_code=502, detail="Could not generate a treatment timeline. Please try again."
        ) from None
    except Exception as e:
        logger.error("Unexpected timeline failure: %s", e)
        raise HTTPException(status_code=500, detail="Failed to generate timeline") from None

    record_llm_call(user.id, "timeline")
    return timeline
