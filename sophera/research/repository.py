"""
Research item repository - saved research scoped by user_id.
"""

from __future__ import annotations

import uuid
from typing import Any

from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.research.models import ResearchItem, ResearchItemCreate
from sophera.utils.db_fields import utc_now

logger = get_logger(__name__)


class ResearchItemRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, data: ResearchItemCreate) -> ResearchItem:
        """
        Side Effects:
            - Inserts row into research_items
        """
        item = ResearchItem(
            id=str(uuid.uuid4()),
            user_id=user_id,
            date_added=utc_now(),
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO research_items (
                    id, user_id, title, content, source_type, source_id,
                    source_name, tags, evidence_level, date_added
                ) VALUES (
                    :id, :user_id, :title, :content, :source_type, :source_id,
                    :source_name, :tags, :evidence_level, :date_added
                )
                """,
                item.to_db_dict(),
            )

        logger.info("Saved research item %s", item.id)
        return item

    @staticmethod
    def get(item_id: str, user_id: str) -> ResearchItem | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM research_items WHERE id = ? AND user_id = ?",
                (item_id, user_id),
            ).fetchone()
        return ResearchItem.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(
        user_id: str,
        source_type: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ResearchItem]:
        """Most recently saved first."""
        query = "SELECT * FROM research_items WHERE user_id = ?"
        params: list[Any] = [user_id]
        if source_type:
            query += " AND source_type = ?"
            params.append(source_type.lower())
        query += " ORDER BY date_added DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [ResearchItem.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def delete(item_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM research_items WHERE id = ? AND user_id = ?",
                (item_id, user_id),
            )
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Deleted research item %s", item_id)
        return deleted
