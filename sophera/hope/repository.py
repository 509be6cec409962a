"""
Hope snippet repository.

Visibility: a user sees shared snippets (user_id IS NULL) plus their own.
Only owned snippets can be updated or deleted.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal

from sophera.hope.models import HopeSnippet, HopeSnippetCreate, HopeSnippetUpdate
from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.utils.db_fields import update_columns, utc_now

logger = get_logger(__name__)

Scope = Literal["visible", "own", "shared"]

_REQUIRED_COLUMNS = ("title", "content", "category", "tags", "is_active")


def _scope_clause(scope: Scope, user_id: str) -> tuple[str, list[Any]]:
    if scope == "own":
        return "user_id = ?", [user_id]
    if scope == "shared":
        return "user_id IS NULL", []
    return "(user_id IS NULL OR user_id = ?)", [user_id]


class HopeSnippetRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, data: HopeSnippetCreate) -> HopeSnippet:
        now = utc_now()
        snippet = HopeSnippet(
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO hope_snippets (
                    id, user_id, title, content, category, author, source, tags,
                    is_active, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :title, :content, :category, :author, :source, :tags,
                    :is_active, :created_at, :updated_at
                )
                """,
                snippet.to_db_dict(),
            )

        logger.info("Created hope snippet %s", snippet.id)
        return snippet

    @staticmethod
    def get_visible(snippet_id: str, user_id: str) -> HopeSnippet | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM hope_snippets WHERE id = ? AND (user_id IS NULL OR user_id = ?)",
                (snippet_id, user_id),
            ).fetchone()
        return HopeSnippet.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_visible(
        user_id: str,
        category: str | None = None,
        include_inactive: bool = False,
        scope: Scope = "visible",
        limit: int = 100,
        offset: int = 0,
    ) -> list[HopeSnippet]:
        """Own snippets first, then shared; newest first within each group."""
        clause, params = _scope_clause(scope, user_id)
        query = f"SELECT * FROM hope_snippets WHERE {clause}"
        if category:
            query += " AND category = ?"
            params.append(category)
        if not include_inactive:
            query += " AND is_active = 1"
        query += """
            ORDER BY
                CASE WHEN user_id IS NULL THEN 1 ELSE 0 END,
                created_at DESC
            LIMIT ? OFFSET ?
        """
        params.extend([limit, offset])

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [HopeSnippet.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def random(
        user_id: str,
        category: str | None = None,
        scope: Scope = "visible",
    ) -> HopeSnippet | None:
        """One random active snippet in scope, or None when nothing matches."""
        clause, params = _scope_clause(scope, user_id)
        query = f"SELECT * FROM hope_snippets WHERE {clause} AND is_active = 1"
        if category:
            query += " AND category = ?"
            params.append(category)
        query += " ORDER BY RANDOM() LIMIT 1"

        with get_db_connection() as conn:
            row = conn.execute(query, params).fetchone()
        return HopeSnippet.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def update(
        snippet_id: str, user_id: str, updates: HopeSnippetUpdate
    ) -> HopeSnippet | None:
        """Update an owned snippet. Shared snippets are read-only (returns None)."""
        update_data = update_columns(updates.model_dump(exclude_unset=True), _REQUIRED_COLUMNS)

        with db_transaction() as conn:
            row = conn.execute(
                "SELECT id FROM hope_snippets WHERE id = ? AND user_id = ?",
                (snippet_id, user_id),
            ).fetchone()
            if row is None:
                return None

            if update_data:
                update_data["updated_at"] = utc_now().isoformat()
                set_clause = ", ".join(f"{k} = :{k}" for k in update_data)
                update_data.update(id=snippet_id, user_id=user_id)
                conn.execute(
                    f"UPDATE hope_snippets SET {set_clause} "
                    "WHERE id = :id AND user_id = :user_id",
                    update_data,
                )

        return HopeSnippetRepository.get_visible(snippet_id, user_id)

    @staticmethod
    @retry_on_db_lock()
    def delete(snippet_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM hope_snippets WHERE id = ? AND user_id = ?",
                (snippet_id, user_id),
            )
            return cursor.rowcount > 0
