"""
Document repository - CRUD for the documents table.
"""

from __future__ import annotations

import uuid
from typing import Any

from sophera.documents.models import Document, DocumentAnalysis, DocumentCreate, DocumentType
from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.utils.db_fields import dumps, utc_now

logger = get_logger(__name__)


class DocumentRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, data: DocumentCreate) -> Document:
        now = utc_now()
        document = Document(
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO documents (
                    id, user_id, title, type, content, parsed_content, source_date,
                    tags, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :title, :type, :content, :parsed_content, :source_date,
                    :tags, :created_at, :updated_at
                )
                """,
                document.to_db_dict(),
            )

        logger.info("Created document %s (%d chars)", document.id, len(document.content))
        return document

    @staticmethod
    def get(document_id: str, user_id: str) -> Document | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM documents WHERE id = ? AND user_id = ?",
                (document_id, user_id),
            ).fetchone()
        return Document.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(
        user_id: str,
        doc_type: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Document]:
        """Documents newest first, optionally filtered by type."""
        query = "SELECT * FROM documents WHERE user_id = ?"
        params: list[Any] = [user_id]
        if doc_type:
            query += " AND type = ?"
            params.append(doc_type)
        query += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Document.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def update_parsed(
        document_id: str,
        user_id: str,
        analysis: DocumentAnalysis,
        doc_type: DocumentType | str | None = None,
    ) -> Document | None:
        """
        Store an analysis result, optionally replacing the document type.

        Side Effects:
            - Overwrites parsed_content and bumps updated_at
        """
        values: dict[str, Any] = {
            "parsed_content": dumps(analysis),
            "updated_at": utc_now().isoformat(),
            "id": document_id,
            "user_id": user_id,
        }
        set_clause = "parsed_content = :parsed_content, updated_at = :updated_at"
        if doc_type is not None:
            values["type"] = DocumentType(doc_type).value
            set_clause += ", type = :type"

        with db_transaction() as conn:
            cursor = conn.execute(
                f"UPDATE documents SET {set_clause} WHERE id = :id AND user_id = :user_id",
                values,
            )
            if cursor.rowcount == 0:
                return None

        return DocumentRepository.get(document_id, user_id)

    @staticmethod
    @retry_on_db_lock()
    def delete(document_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE id = ? AND user_id = ?",
                (document_id, user_id),
            )
            return cursor.rowcount > 0
