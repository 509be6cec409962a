"""
Treatment repository - CRUD for the treatments table.

Every query is scoped by user_id: a treatment owned by someone else behaves
exactly like one that does not exist.
"""

from __future__ import annotations

import uuid
from typing import Any

from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.treatments.models import (
    EffectivenessEntry,
    SideEffectEntry,
    Treatment,
    TreatmentCreate,
    TreatmentUpdate,
)
from sophera.utils.db_fields import dumps, update_columns, utc_now
from sophera.utils.validators import validate_date_range

logger = get_logger(__name__)


class TreatmentRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, data: TreatmentCreate) -> Treatment:
        """
        Side Effects:
            - Inserts row into treatments
        """
        now = utc_now()
        treatment = Treatment(
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO treatments (
                    id, user_id, name, type, start_date, end_date, notes,
                    side_effects, effectiveness, active, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :name, :type, :start_date, :end_date, :notes,
                    :side_effects, :effectiveness, :active, :created_at, :updated_at
                )
                """,
                treatment.to_db_dict(),
            )

        logger.info("Created treatment %s", treatment.id)
        return treatment

    @staticmethod
    def get(treatment_id: str, user_id: str) -> Treatment | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM treatments WHERE id = ? AND user_id = ?",
                (treatment_id, user_id),
            ).fetchone()
        return Treatment.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(
        user_id: str,
        active: bool | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Treatment]:
        """Newest start date first; undated treatments last."""
        query = "SELECT * FROM treatments WHERE user_id = ?"
        params: list[Any] = [user_id]
        if active is not None:
            query += " AND active = ?"
            params.append(int(active))
        query += """
            ORDER BY
                CASE WHEN start_date IS NULL THEN 1 ELSE 0 END,
                start_date DESC,
                created_at DESC
            LIMIT ? OFFSET ?
        """
        params.extend([limit, offset])

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Treatment.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def update(treatment_id: str, user_id: str, updates: TreatmentUpdate) -> Treatment | None:
        """
        Apply a partial update.

        Returns:
            Updated Treatment, or None if not found / not owned

        Raises:
            ValueError: If the resulting end_date precedes start_date
        """
        existing = TreatmentRepository.get(treatment_id, user_id)
        if existing is None:
            return None

        changes = updates.model_dump(exclude_unset=True)
        if not changes:
            return existing

        validate_date_range(
            changes.get("start_date", existing.start_date),
            changes.get("end_date", existing.end_date),
        )

        update_data = update_columns(changes, ("name", "type", "active"))
        update_data["updated_at"] = utc_now().isoformat()
        set_clause = ", ".join(f"{k} = :{k}" for k in update_data)
        update_data.update(id=treatment_id, user_id=user_id)

        with db_transaction() as conn:
            conn.execute(
                f"UPDATE treatments SET {set_clause} WHERE id = :id AND user_id = :user_id",
                update_data,
            )

        return TreatmentRepository.get(treatment_id, user_id)

    @staticmethod
    @retry_on_db_lock()
    def delete(treatment_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM treatments WHERE id = ? AND user_id = ?",
                (treatment_id, user_id),
            )
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Deleted treatment %s", treatment_id)
        return deleted

    @staticmethod
    @retry_on_db_lock()
    def add_side_effect(
        treatment_id: str, user_id: str, entry: SideEffectEntry
    ) -> Treatment | None:
        """Append one side-effect entry. Read-modify-write inside one transaction."""
        return TreatmentRepository._append(treatment_id, user_id, "side_effects", entry)

    @staticmethod
    @retry_on_db_lock()
    def add_effectiveness(
        treatment_id: str, user_id: str, entry: EffectivenessEntry
    ) -> Treatment | None:
        return TreatmentRepository._append(treatment_id, user_id, "effectiveness", entry)

    @staticmethod
    def _append(
        treatment_id: str,
        user_id: str,
        column: str,
        entry: SideEffectEntry | EffectivenessEntry,
    ) -> Treatment | None:
        with db_transaction() as conn:
            row = conn.execute(
                "SELECT * FROM treatments WHERE id = ? AND user_id = ?",
                (treatment_id, user_id),
            ).fetchone()
            if row is None:
                return None

            treatment = Treatment.from_db_row(dict(row))
            entries = list(getattr(treatment, column))
            entries.append(entry)

            # column is one of two literals passed by the public methods
            conn.execute(
                f"UPDATE treatments SET {column} = ?, updated_at = ? WHERE id = ?",
                (dumps(entries), utc_now().isoformat(), treatment_id),
            )

        return TreatmentRepository.get(treatment_id, user_id)
