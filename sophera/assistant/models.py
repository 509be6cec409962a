"""
Chat message and action step models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sophera.assistant.types import ModelType, Source
from sophera.utils.db_fields import dumps, loads, parse_dt, utc_now
from sophera.utils.validators import require_text


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    role: MessageRole
    content: str
    model_used: str | None = None
    sources: list[Source] | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role,
            "content": self.content,
            "model_used": self.model_used,
            "sources": dumps(self.sources) if self.sources is not None else None,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Message:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            role=MessageRole(row["role"]),
            content=row["content"],
            model_used=row.get("model_used"),
            sources=loads(row.get("sources"), None),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
        )


class MessageCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    content: str
    preferred_model: ModelType | None = None

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, v: str) -> str:
        return require_text(v, "content")


class ChatExchange(BaseModel):
    """Result of POST /api/messages: the stored user and assistant messages."""

    user_message: Message
    assistant_message: Message


class RouteRequest(BaseModel):
    query: str

    @field_validator("query")
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        return require_text(v, "query")


class ActionStepCategory(str, Enum):
    EXERCISE = "exercise"
    NUTRITION = "nutrition"
    MENTAL = "mental"
    TREATMENT = "treatment"
    SOCIAL = "social"
    RESEARCH = "research"


class ActionStep(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str
    description: str
    category: ActionStepCategory | None = None
    source: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def unknown_category_to_none(cls, v: Any) -> Any:
        # LLM output sometimes invents categories
        if isinstance(v, str) and v.lower() not in {c.value for c in ActionStepCategory}:
            return None
        return v.lower() if isinstance(v, str) else v
