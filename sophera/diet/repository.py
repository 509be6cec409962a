"""
Diet log repository - CRUD for the diet_logs table plus daily totals.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sophera.diet.models import DailyTotals, DietLog, DietLogCreate, DietLogUpdate
from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.utils.db_fields import update_columns, utc_now

logger = get_logger(__name__)

_REQUIRED_COLUMNS = ("meal_date", "meal_type", "food_items", "images")


class DietLogRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, data: DietLogCreate) -> DietLog:
        now = utc_now()
        log = DietLog(
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO diet_logs (
                    id, user_id, meal_date, meal_type, food_items, calories, carbs,
                    protein, fat, notes, images, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :meal_date, :meal_type, :food_items, :calories, :carbs,
                    :protein, :fat, :notes, :images, :created_at, :updated_at
                )
                """,
                log.to_db_dict(),
            )

        logger.info("Created diet log %s", log.id)
        return log

    @staticmethod
    def get(log_id: str, user_id: str) -> DietLog | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM diet_logs WHERE id = ? AND user_id = ?",
                (log_id, user_id),
            ).fetchone()
        return DietLog.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(
        user_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[DietLog]:
        """Meals newest first. date_from/date_to are inclusive."""
        query = "SELECT * FROM diet_logs WHERE user_id = ?"
        params: list[Any] = [user_id]
        if date_from:
            query += " AND meal_date >= ?"
            params.append(date_from.isoformat())
        if date_to:
            query += " AND meal_date <= ?"
            params.append(date_to.isoformat())
        query += " ORDER BY meal_date DESC, created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [DietLog.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def recent(user_id: str, limit: int = 5) -> list[DietLog]:
        return DietLogRepository.list_by_user(user_id, limit=limit)

    @staticmethod
    def daily_totals(user_id: str, day: date) -> DailyTotals:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS meals,
                    COALESCE(SUM(calories), 0) AS calories,
                    COALESCE(SUM(carbs), 0) AS carbs,
                    COALESCE(SUM(protein), 0) AS protein,
                    COALESCE(SUM(fat), 0) AS fat
                FROM diet_logs
                WHERE user_id = ? AND meal_date = ?
                """,
                (user_id, day.isoformat()),
            ).fetchone()

        return DailyTotals(
            day=day,
            meals=row["meals"],
            calories=row["calories"],
            carbs=row["carbs"],
            protein=row["protein"],
            fat=row["fat"],
        )

    @staticmethod
    @retry_on_db_lock()
    def update(log_id: str, user_id: str, updates: DietLogUpdate) -> DietLog | None:
        update_data = update_columns(updates.model_dump(exclude_unset=True), _REQUIRED_COLUMNS)
        if not update_data:
            return DietLogRepository.get(log_id, user_id)

        update_data["updated_at"] = utc_now().isoformat()
        set_clause = ", ".join(f"{k} = :{k}" for k in update_data)
        update_data.update(id=log_id, user_id=user_id)

        with db_transaction() as conn:
            cursor = conn.execute(
                f"UPDATE diet_logs SET {set_clause} WHERE id = :id AND user_id = :user_id",
                update_data,
            )
            if cursor.rowcount == 0:
                return None

        return DietLogRepository.get(log_id, user_id)

    @staticmethod
    @retry_on_db_lock()
    def delete(log_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM diet_logs WHERE id = ? AND user_id = ?",
                (log_id, user_id),
            )
            return cursor.rowcount > 0
