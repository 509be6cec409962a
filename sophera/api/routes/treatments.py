"""
Treatments API endpoints.

CRUD for treatment regimens plus append-only side-effect and effectiveness logs.
A treatment owned by another user is reported as not found.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from sophera.observability.logging import get_logger
from sophera.treatments import (
    EffectivenessEntry,
    SideEffectEntry,
    Treatment,
    TreatmentCreate,
    TreatmentRepository,
    TreatmentUpdate,
)
from sophera.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/treatments", tags=["treatments"])
logger = get_logger(__name__)

NOT_FOUND = "Treatment not found"


@router.get("", response_model=list[Treatment])
async def list_treatments(
    user: AuthenticatedUser = Depends(get_current_user),
    active: bool | None = Query(None, description="Only active (true) or ended (false) treatments"),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[Treatment]:
    """List treatments, newest start date first."""
    try:
        return TreatmentRepository.list_by_user(user.id, active=active, limit=limit, offset=offset)
    except Exception as e:
        logger.error("Failed to list treatments: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list treatments") from None


@router.post("", response_model=Treatment, status_code=201)
async def create_treatment(
    request: TreatmentCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Treatment:
    try:
        return TreatmentRepository.create(user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to create treatment: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create treatment") from None


@router.get("/{treatment_id}", response_model=Treatment)
async def get_treatment(
    treatment_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Treatment:
    treatment = TreatmentRepository.get(treatment_id, user.id)
    if treatment is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return treatment


@router.patch("/{treatment_id}", response_model=Treatment)
async def update_treatment(
    treatment_id: str,
    request: TreatmentUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Treatment:
    try:
        treatment = TreatmentRepository.update(treatment_id, user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update treatment: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update treatment") from None

    if treatment is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return treatment


@router.delete("/{treatment_id}", status_code=204)
async def delete_treatment(
    treatment_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not TreatmentRepository.delete(treatment_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)


@router.post("/{treatment_id}/side-effects", response_model=Treatment, status_code=201)
async def add_side_effect(
    treatment_id: str,
    entry: SideEffectEntry,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Treatment:
    """Append one side-effect entry to the treatment."""
    try:
        treatment = TreatmentRepository.add_side_effect(treatment_id, user.id, entry)
    except Exception as e:
        logger.error("Failed to add side effect: %s", e)
        raise HTTPException(status_code=500, detail="Failed to add side effect") from None

    if treatment is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return treatment


@router.post("/{treatment_id}/effectiveness", response_model=Treatment, status_code=201)
async def add_effectiveness(
    treatment_id: str,
    entry: EffectivenessEntry,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Treatment:
    """Append one effectiveness rating to the treatment."""
    try:
        treatment = TreatmentRepository.add_effectiveness(treatment_id, user.id, entry)
    except Exception as e:
        logger.error("Failed to add effectiveness entry: %s", e)
        raise HTTPException(status_code=500, detail="Failed to add effectiveness entry") from None

    if treatment is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return treatment
