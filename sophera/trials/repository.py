"""
Saved trial repository.

Rows are unique per (user_id, trial_id). Re-saving a trial keeps its id and
date_added and overwrites the rest.
"""

from __future__ import annotations

import uuid

from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.trials.models import SavedTrial, SavedTrialCreate
from sophera.utils.db_fields import utc_now

logger = get_logger(__name__)


class SavedTrialRepository:
    @staticmethod
    @retry_on_db_lock()
    def save(user_id: str, data: SavedTrialCreate) -> SavedTrial:
        """
        Insert or refresh the user's copy of a trial.

        Side Effects:
            - Upserts the (user_id, trial_id) row in saved_trials
        """
        trial = SavedTrial(
            id=str(uuid.uuid4()),
            user_id=user_id,
            date_added=utc_now(),
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO saved_trials (
                    id, user_id, trial_id, title, phase, status, locations,
                    match_score, notes, date_added
                ) VALUES (
                    :id, :user_id, :trial_id, :title, :phase, :status, :locations,
                    :match_score, :notes, :date_added
                )
                ON CONFLICT(user_id, trial_id) DO UPDATE SET
                    title = excluded.title,
                    phase = excluded.phase,
                    status = excluded.status,
                    locations = excluded.locations,
                    match_score = excluded.match_score,
                    notes = excluded.notes
                """,
                trial.to_db_dict(),
            )
            row = conn.execute(
                "SELECT * FROM saved_trials WHERE user_id = ? AND trial_id = ?",
                (user_id, trial.trial_id),
            ).fetchone()

        saved = SavedTrial.from_db_row(dict(row))
        logger.info("Saved trial %s as %s", saved.trial_id, saved.id)
        return saved

    @staticmethod
    def get(saved_id: str, user_id: str) -> SavedTrial | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM saved_trials WHERE id = ? AND user_id = ?",
                (saved_id, user_id),
            ).fetchone()
        return SavedTrial.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(user_id: str, limit: int = 100, offset: int = 0) -> list[SavedTrial]:
        """Most recently saved first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM saved_trials
                WHERE user_id = ?
                ORDER BY date_added DESC
                LIMIT ? OFFSET ?
                """,
                (user_id, limit, offset),
            ).fetchall()
        return [SavedTrial.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def delete(saved_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM saved_trials WHERE id = ? AND user_id = ?",
                (saved_id, user_id),
            )
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Deleted saved trial %s", saved_id)
        return deleted
