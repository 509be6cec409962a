"""
Diet log API endpoints, including per-day calorie and macro totals.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from sophera.diet import DailyTotals, DietLog, DietLogCreate, DietLogRepository, DietLogUpdate
from sophera.observability.logging import get_logger
from sophera.utils.error_sanitizer import sanitize_error_message
from sophera.utils.validators import validate_date_range

router = APIRouter(prefix="/api/diet-logs", tags=["diet"])
logger = get_logger(__name__)

NOT_FOUND = "Diet log not found"


@router.get("", response_model=list[DietLog])
async def list_diet_logs(
    user: AuthenticatedUser = Depends(get_current_user),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[DietLog]:
    try:
        validate_date_range(date_from, date_to, "date_from", "date_to")
        return DietLogRepository.list_by_user(
            user.id, date_from=date_from, date_to=date_to, limit=limit, offset=offset
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to list diet logs: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list diet logs") from None


@router.get("/totals", response_model=DailyTotals)
async def get_daily_totals(
    user: AuthenticatedUser = Depends(get_current_user),
    day: date | None = Query(None, description="Calendar day (YYYY-MM-DD), today by default"),
) -> DailyTotals:
    """Sum calories and macros over one calendar day."""
    try:
        return DietLogRepository.daily_totals(user.id, day or date.today())
    except Exception as e:
        logger.error("Failed to compute diet totals: %s", e)
        raise HTTPException(status_code=500, detail="Failed to compute diet totals") from None


@router.post("", response_model=DietLog, status_code=201)
async def create_diet_log(
    request: DietLogCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> DietLog:
    try:
        return DietLogRepository.create(user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to create diet log: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create diet log") from None


@router.get("/{log_id}", response_model=DietLog)
async def get_diet_log(
    log_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> DietLog:
    log = DietLogRepository.get(log_id, user.id)
    if log is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return log


@router.put("/{log_id}", response_model=DietLog)
async def update_diet_log(
    log_id: str,
    request: DietLogUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> DietLog:
    try:
        log = DietLogRepository.update(log_id, user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update diet log: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update diet log") from None

    if log is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return log


@router.delete("/{log_id}", status_code=204)
async def delete_diet_log(
    log_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not DietLogRepository.delete(log_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)
