"""
Journal log repository - CRUD for the journal_logs table.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.journal.models import JournalLog, JournalLogCreate, JournalLogUpdate
from sophera.observability.logging import get_logger
from sophera.utils.db_fields import update_columns, utc_now

logger = get_logger(__name__)

_REQUIRED_COLUMNS = ("entry_date", "content", "symptoms", "medication", "images")


class JournalLogRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, data: JournalLogCreate) -> JournalLog:
        now = utc_now()
        log = JournalLog(
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO journal_logs (
                    id, user_id, entry_date, content, mood, energy_level, sleep_quality,
                    pain_level, symptoms, medication, food_diary, images, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :entry_date, :content, :mood, :energy_level, :sleep_quality,
                    :pain_level, :symptoms, :medication, :food_diary, :images, :created_at,
                    :updated_at
                )
                """,
                log.to_db_dict(),
            )

        logger.info("Created journal log %s", log.id)
        return log

    @staticmethod
    def get(log_id: str, user_id: str) -> JournalLog | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM journal_logs WHERE id = ? AND user_id = ?",
                (log_id, user_id),
            ).fetchone()
        return JournalLog.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(
        user_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JournalLog]:
        """Entries newest first. date_from/date_to are inclusive."""
        query = "SELECT * FROM journal_logs WHERE user_id = ?"
        params: list[Any] = [user_id]
        if date_from:
            query += " AND entry_date >= ?"
            params.append(date_from.isoformat())
        if date_to:
            query += " AND entry_date <= ?"
            params.append(date_to.isoformat())
        query += " ORDER BY entry_date DESC, created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [JournalLog.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def recent(user_id: str, limit: int = 5) -> list[JournalLog]:
        return JournalLogRepository.list_by_user(user_id, limit=limit)

    @staticmethod
    def count_since(user_id: str, since: date) -> int:
        with get_db_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM journal_logs WHERE user_id = ? AND entry_date >= ?",
                (user_id, since.isoformat()),
            ).fetchone()[0]

    @staticmethod
    @retry_on_db_lock()
    def update(log_id: str, user_id: str, updates: JournalLogUpdate) -> JournalLog | None:
        update_data = update_columns(updates.model_dump(exclude_unset=True), _REQUIRED_COLUMNS)
        if not update_data:
            return JournalLogRepository.get(log_id, user_id)

        update_data["updated_at"] = utc_now().isoformat()
        set_clause = ", ".join(f"{k} = :{k}" for k in update_data)
        update_data.update(id=log_id, user_id=user_id)

        with db_transaction() as conn:
            cursor = conn.execute(
                f"UPDATE journal_logs SET {set_clause} WHERE id = :id AND user_id = :user_id",
                update_data,
            )
            if cursor.rowcount == 0:
                return None

        return JournalLogRepository.get(log_id, user_id)

    @staticmethod
    @retry_on_db_lock()
    def delete(log_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM journal_logs WHERE id = ? AND user_id = ?",
                (log_id, user_id),
            )
            return cursor.rowcount > 0
