"""
User profile repository - CRUD for the users table.
"""

from __future__ import annotations

from typing import Any

from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.users.models import ProfileUpdate, UserProfile
from sophera.utils.db_fields import column_value, dumps, utc_now
from sophera.utils.redaction import redact

logger = get_logger(__name__)


class UserNotFoundError(LookupError):
    """Raised when a profile operation targets a user that does not exist."""


class UserRepository:
    """Profile persistence. A user's row is created on first authenticated visit."""

    @staticmethod
    def get(user_id: str) -> UserProfile | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return UserProfile.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def upsert(
        user_id: str,
        username: str,
        display_name: str | None = None,
        email: str | None = None,
    ) -> UserProfile:
        """
        Create the profile if missing; never overwrite an existing one.

        Side Effects:
            - Inserts into users when the id is new
        """
        profile = UserProfile(
            id=user_id,
            username=username,
            display_name=display_name,
            email=email,
        )

        with db_transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO users (
                    id, username, display_name, email, diagnosis, diagnosis_stage,
                    diagnosis_date, preferences, created_at, updated_at
                ) VALUES (
                    :id, :username, :display_name, :email, :diagnosis, :diagnosis_stage,
                    :diagnosis_date, :preferences, :created_at, :updated_at
                )
                """,
                profile.to_db_dict(),
            )
            created = cursor.rowcount > 0

        if created:
            logger.info("Created profile for user %s", redact(user_id))
            return profile

        existing = UserRepository.get(user_id)
        assert existing is not None
        return existing

    @staticmethod
    @retry_on_db_lock()
    def update_profile(user_id: str, updates: ProfileUpdate) -> UserProfile:
        """
        Write only the fields present in updates.

        Raises:
            UserNotFoundError: If the profile does not exist
        """
        update_data: dict[str, Any] = {
            k: column_value(v) for k, v in updates.model_dump(exclude_unset=True).items()
        }
        if not update_data:
            existing = UserRepository.get(user_id)
            if existing is None:
                raise UserNotFoundError(user_id)
            return existing

        update_data["updated_at"] = utc_now().isoformat()
        set_clause = ", ".join(f"{k} = :{k}" for k in update_data)
        update_data["id"] = user_id

        with db_transaction() as conn:
            cursor = conn.execute(f"UPDATE users SET {set_clause} WHERE id = :id", update_data)
            if cursor.rowcount == 0:
                raise UserNotFoundError(user_id)

        updated = UserRepository.get(user_id)
        assert updated is not None
        return updated

    @staticmethod
    @retry_on_db_lock()
    def update_preferences(user_id: str, preferences: dict[str, Any]) -> UserProfile:
        """
        Shallow-merge preferences into the stored ones.

        Raises:
            UserNotFoundError: If the profile does not exist
        """
        with db_transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if row is None:
                raise UserNotFoundError(user_id)

            merged = {**UserProfile.from_db_row(dict(row)).preferences, **preferences}
            conn.execute(
                "UPDATE users SET preferences = ?, updated_at = ? WHERE id = ?",
                (dumps(merged), utc_now().isoformat(), user_id),
            )

        updated = UserRepository.get(user_id)
        assert updated is not None
        return updated
