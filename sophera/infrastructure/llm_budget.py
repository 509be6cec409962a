"""
LLM budget tracking for the Sophera API.

Counts LLM calls per user and globally per calendar day so the chat,
timeline, document Q&A and action-step features cannot run up unbounded cost.
The llm_usage table is created by init_database().
"""

from __future__ import annotations

from datetime import date
from typing import NamedTuple

from sophera.config import LLM_GLOBAL_DAILY_LIMIT, LLM_USER_DAILY_LIMIT
from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter

logger = get_logger(__name__)


class BudgetStatus(NamedTuple):
    """Current budget status for a user."""

    user_calls_today: int
    user_limit: int
    global_calls_today: int
    global_limit: int
    is_allowed: bool
    reason: str | None


class BudgetExceededError(RuntimeError):
    """Raised when a caller is over its daily LLM budget."""

    def __init__(self, status: BudgetStatus) -> None:
        super().__init__(status.reason or "LLM budget exceeded")
        self.status = status


@retry_on_db_lock()
def check_budget(
    user_id: str,
    user_limit: int = LLM_USER_DAILY_LIMIT,
    global_limit: int = LLM_GLOBAL_DAILY_LIMIT,
) -> BudgetStatus:
    """
    Check whether user_id may make another LLM call today.
    """
    today = date.today().isoformat()

    with get_db_connection() as conn:
        user_calls = conn.execute(
            """
            SELECT COALESCE(SUM(call_count), 0)
            FROM llm_usage
            WHERE user_id = ? AND call_date = ?
            """,
            (user_id, today),
        ).fetchone()[0]

        global_calls = conn.execute(
            "SELECT COALESCE(SUM(call_count), 0) FROM llm_usage WHERE call_date = ?",
            (today,),
        ).fetchone()[0]

    reason = None
    if user_calls >= user_limit:
        reason = f"User daily limit exceeded ({user_calls}/{user_limit})"
    elif global_calls >= global_limit:
        reason = f"Global daily limit exceeded ({global_calls}/{global_limit})"

    return BudgetStatus(
        user_calls_today=user_calls,
        user_limit=user_limit,
        global_calls_today=global_calls,
        global_limit=global_limit,
        is_allowed=reason is None,
        reason=reason,
    )


def ensure_budget(user_id: str) -> BudgetStatus:
    """
    check_budget() that raises instead of returning a disallowed status.

    Raises:
        BudgetExceededError: When the user or global limit is reached
    """
    status = check_budget(user_id)
    if not status.is_allowed:
        counter("llm.budget.rejected")
        logger.warning("LLM budget rejected call: %s", status.reason)
        raise BudgetExceededError(status)
    return status


@retry_on_db_lock()
def record_llm_call(user_id: str, call_type: str = "chat") -> None:
    """
    Record one LLM call for budget tracking.

    Side Effects:
        - Upserts the (user, call_type, today) row in llm_usage
    """
    today = date.today().isoformat()

    with db_transaction() as conn:
        conn.execute(
            """
            INSERT INTO llm_usage (user_id, call_type, call_date, call_count)
            VALUES (?, ?, ?, 1)
            ON CONFLICT(user_id, call_type, call_date)
            DO UPDATE SET call_count = call_count + 1
            """,
            (user_id, call_type, today),
        )

    counter(f"llm.budget.call.{call_type}")
    logger.debug("Recorded LLM call: type=%s", call_type)


def get_daily_usage_report(for_date: date | None = None) -> dict:
    """Usage totals for one day, broken down by call type."""
    report_date = (for_date or date.today()).isoformat()

    with get_db_connection() as conn:
        total_calls = conn.execute(
            "SELECT COALESCE(SUM(call_count), 0) FROM llm_usage WHERE call_date = ?",
            (report_date,),
        ).fetchone()[0]

        cursor = conn.execute(
            """
            SELECT call_type, SUM(call_count) AS calls
            FROM llm_usage
            WHERE call_date = ?
            GROUP BY call_type
            """,
            (report_date,),
        )
        by_type = {row[0]: row[1] for row in cursor.fetchall()}

        unique_users = conn.execute(
            "SELECT COUNT(DISTINCT user_id) FROM llm_usage WHERE call_date = ?",
            (report_date,),
        ).fetchone()[0]

    return {
        "date": report_date,
        "total_calls": total_calls,
        "unique_users": unique_users,
        "by_type": by_type,
        "limits": {
            "user_daily": LLM_USER_DAILY_LIMIT,
            "global_daily": LLM_GLOBAL_DAILY_LIMIT,
        },
    }
