"""
Journal log API endpoints.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from sophera.journal import JournalLog, JournalLogCreate, JournalLogRepository, JournalLogUpdate
from sophera.observability.logging import get_logger
from sophera.utils.error_sanitizer import sanitize_error_message
from sophera.utils.validators import validate_date_range

router = APIRouter(prefix="/api/journal-logs", tags=["journal"])
logger = get_logger(__name__)

NOT_FOUND = "Journal log not found"


@router.get("", response_model=list[JournalLog])
async def list_journal_logs(
    user: AuthenticatedUser = Depends(get_current_user),
    date_from: date | None = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    date_to: date | None = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> list[JournalLog]:
    """List journal entries, newest first."""
    try:
        validate_date_range(date_from, date_to, "date_from", "date_to")
        return JournalLogRepository.list_by_user(
            user.id, date_from=date_from, date_to=date_to, limit=limit, offset=offset
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to list journal logs: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list journal logs") from None


@router.post("", response_model=JournalLog, status_code=201)
async def create_journal_log(
    request: JournalLogCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> JournalLog:
    try:
        return JournalLogRepository.create(user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to create journal log: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create journal log") from None


@router.get("/{log_id}", response_model=JournalLog)
async def get_journal_log(
    log_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> JournalLog:
    log = JournalLogRepository.get(log_id, user.id)
    if log is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return log


@router.put("/{log_id}", response_model=JournalLog)
async def update_journal_log(
    log_id: str,
    request: JournalLogUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> JournalLog:
    try:
        log = JournalLogRepository.update(log_id, user.id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to update journal log: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update journal log") from None

    if log is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return log


@router.delete("/{log_id}", status_code=204)
async def delete_journal_log(
    log_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    if not JournalLogRepository.delete(log_id, user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=204)
