"""
Message repository - chat history in the messages table.
"""

from __future__ import annotations

import sqlite3
import uuid

from sophera.assistant.models import Message, MessageRole
from sophera.assistant.types import ModelType, Source
from sophera.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from sophera.observability.logging import get_logger
from sophera.users.repository import UserRepository
from sophera.utils.db_fields import utc_now

logger = get_logger(__name__)

WELCOME_MESSAGE = (
    "Hello{name}, I'm Sophera. I'm here to help you through your cancer journey. "
    "You can ask me about treatment options, clinical trials, research, medical "
    "terms in your documents, or just share how you're feeling. How can I help today?"
)


class MessageRepository:
    @staticmethod
    def build(
        user_id: str,
        role: MessageRole | str,
        content: str,
        model_used: str | None = None,
        sources: list[Source] | None = None,
    ) -> Message:
        """A new, unsaved message stamped with the current time."""
        return Message(
            id=str(uuid.uuid4()),
            user_id=user_id,
            role=MessageRole(role),
            content=content,
            model_used=model_used,
            sources=sources,
            created_at=utc_now(),
        )

    @staticmethod
    def _insert(conn: sqlite3.Connection, message: Message) -> None:
        conn.execute(
            """
            INSERT INTO messages (id, user_id, role, content, model_used, sources, created_at)
            VALUES (:id, :user_id, :role, :content, :model_used, :sources, :created_at)
            """,
            message.to_db_dict(),
        )

    @staticmethod
    @retry_on_db_lock()
    def create(
        user_id: str,
        role: MessageRole | str,
        content: str,
        model_used: str | None = None,
        sources: list[Source] | None = None,
    ) -> Message:
        message = MessageRepository.build(user_id, role, content, model_used, sources)

        with db_transaction() as conn:
            MessageRepository._insert(conn, message)

        logger.debug("Stored %s message %s", message.role, message.id)
        return message

    @staticmethod
    @retry_on_db_lock()
    def save_exchange(user_message: Message, assistant_message: Message) -> None:
        """
        Store a user message and its reply in one transaction.

        Side Effects:
            - Inserts both rows into messages, or neither
        """
        with db_transaction() as conn:
            MessageRepository._insert(conn, user_message)
            MessageRepository._insert(conn, assistant_message)

        logger.debug("Stored exchange %s -> %s", user_message.id, assistant_message.id)

    @staticmethod
    def _fetch(user_id: str, limit: int | None = None) -> list[Message]:
        # Newest rows first when limited, then flipped back to chronological
        with get_db_connection() as conn:
            if limit is None:
                rows = conn.execute(
                    "SELECT * FROM messages WHERE user_id = ? ORDER BY created_at ASC, rowid ASC",
                    (user_id,),
                ).fetchall()
                return [Message.from_db_row(dict(row)) for row in rows]

            rows = conn.execute(
                """
                SELECT * FROM messages WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [Message.from_db_row(dict(row)) for row in reversed(rows)]

    @staticmethod
    def list_by_user(user_id: str) -> list[Message]:
        """
        Full chat history, oldest first.

        Side Effects:
            - Stores a welcome assistant message when the history is empty
        """
        messages = MessageRepository._fetch(user_id)
        if messages:
            return messages

        profile = UserRepository.get(user_id)
        name = profile.display_name if profile and profile.display_name else None
        welcome = MessageRepository.create(
            user_id,
            MessageRole.ASSISTANT,
            WELCOME_MESSAGE.format(name=f" {name}" if name else ""),
            model_used=ModelType.CLAUDE.value,
        )
        return [welcome]

    @staticmethod
    def recent(user_id: str, limit: int) -> list[Message]:
        """The last limit messages, oldest first."""
        return MessageRepository._fetch(user_id, limit)
