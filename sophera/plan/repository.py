"""
Plan item repository - CRUD for plan_items plus completion and upcoming queries.
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta

from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.plan.models import PlanItem, PlanItemCreate, PlanItemUpdate
from sophera.utils.db_fields import update_columns, utc_now
from sophera.utils.validators import validate_date_range

logger = get_logger(__name__)

_REQUIRED_COLUMNS = ("title", "category", "frequency", "priority")

# Due date ascending, undated items last
_ORDER_BY_DUE = """
    ORDER BY
        CASE WHEN due_date IS NULL THEN 1 ELSE 0 END,
        due_date ASC,
        created_at ASC
"""


class PlanItemRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, data: PlanItemCreate) -> PlanItem:
        """
        New items always start incomplete.

        Side Effects:
            - Inserts row into plan_items
        """
        now = utc_now()
        item = PlanItem(
            id=str(uuid.uuid4()),
            user_id=user_id,
            is_completed=False,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO plan_items (
                    id, user_id, title, description, category, start_date, due_date,
                    frequency, priority, is_completed, completed_at, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :title, :description, :category, :start_date, :due_date,
                    :frequency, :priority, :is_completed, :completed_at, :created_at, :updated_at
                )
                """,
                item.to_db_dict(),
            )

        logger.info("Created plan item %s", item.id)
        return item

    @staticmethod
    def get(item_id: str, user_id: str) -> PlanItem | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM plan_items WHERE id = ? AND user_id = ?",
                (item_id, user_id),
            ).fetchone()
        return PlanItem.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(
        user_id: str,
        include_completed: bool = True,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PlanItem]:
        query = "SELECT * FROM plan_items WHERE user_id = ?"
        if not include_completed:
            query += " AND is_completed = 0"
        query += _ORDER_BY_DUE + " LIMIT ? OFFSET ?"

        with get_db_connection() as conn:
            rows = conn.execute(query, (user_id, limit, offset)).fetchall()
        return [PlanItem.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def upcoming(user_id: str, days: int = 7, today: date | None = None) -> list[PlanItem]:
        """
        Incomplete items due within the next days days, overdue items included.
        """
        horizon = (today or date.today()) + timedelta(days=days)
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM plan_items "
                "WHERE user_id = ? AND is_completed = 0 "
                "AND due_date IS NOT NULL AND due_date <= ?" + _ORDER_BY_DUE,
                (user_id, horizon.isoformat()),
            ).fetchall()
        return [PlanItem.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def count_completed(user_id: str) -> int:
        with get_db_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM plan_items WHERE user_id = ? AND is_completed = 1",
                (user_id,),
            ).fetchone()[0]

    @staticmethod
    @retry_on_db_lock()
    def update(item_id: str, user_id: str, updates: PlanItemUpdate) -> PlanItem | None:
        """
        Raises:
            ValueError: If the resulting due_date precedes start_date
        """
        existing = PlanItemRepository.get(item_id, user_id)
        if existing is None:
            return None

        changes = updates.model_dump(exclude_unset=True)
        validate_date_range(
            changes.get("start_date", existing.start_date),
            changes.get("due_date", existing.due_date),
            "start_date",
            "due_date",
        )

        update_data = update_columns(changes, _REQUIRED_COLUMNS)
        if not update_data:
            return existing

        update_data["updated_at"] = utc_now().isoformat()
        set_clause = ", ".join(f"{k} = :{k}" for k in update_data)
        update_data.update(id=item_id, user_id=user_id)

        with db_transaction() as conn:
            conn.execute(
                f"UPDATE plan_items SET {set_clause} WHERE id = :id AND user_id = :user_id",
                update_data,
            )

        return PlanItemRepository.get(item_id, user_id)

    @staticmethod
    @retry_on_db_lock()
    def set_completion(item_id: str, user_id: str, is_completed: bool) -> PlanItem | None:
        """
        Mark an item complete (stamping completed_at) or reopen it (clearing it).
        """
        now = utc_now().isoformat()
        with db_transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE plan_items
                SET is_completed = ?, completed_at = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (int(is_completed), now if is_completed else None, now, item_id, user_id),
            )
            if cursor.rowcount == 0:
                return None

        logger.info("Plan item %s completed=%s", item_id, is_completed)
        return PlanItemRepository.get(item_id, user_id)

    @staticmethod
    @retry_on_db_lock()
    def delete(item_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM plan_items WHERE id = ? AND user_id = ?",
                (item_id, user_id),
            )
            return cursor.rowcount > 0
