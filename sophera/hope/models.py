"""
Hope snippet models.

Snippets with user_id None are shared with every user; all others are
private to their owner.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sophera.utils.db_fields import dumps, loads, parse_dt, utc_now
from sophera.utils.validators import require_text, validate_tags


class HopeCategory(str, Enum):
    QUOTE = "quote"
    STORY = "story"
    AFFIRMATION = "affirmation"
    SUPPORT = "support"
    INSPIRATION = "inspiration"


class HopeSnippet(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str | None = None
    title: str
    content: str
    category: HopeCategory
    author: str | None = None
    source: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "author": self.author,
            "source": self.source,
            "tags": dumps(self.tags),
            "is_active": int(self.is_active),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> HopeSnippet:
        return cls(
            id=row["id"],
            user_id=row.get("user_id"),
            title=row["title"],
            content=row["content"],
            category=HopeCategory(row["category"]),
            author=row.get("author"),
            source=row.get("source"),
            tags=loads(row.get("tags"), []),
            is_active=bool(row.get("is_active", 1)),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class HopeSnippetCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str
    content: str
    category: HopeCategory = HopeCategory.INSPIRATION
    author: str | None = None
    source: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("title", "content")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return require_text(v, "title/content")

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        return validate_tags(v)


class HopeSnippetUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str | None = None
    content: str | None = None
    category: HopeCategory | None = None
    author: str | None = None
    source: str | None = None
    tags: list[str] | None = None
    is_active: bool | None = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else validate_tags(v)


class HopeResponse(BaseModel):
    """A hope message plus the snippet it came from, if any."""

    content: str
    source_snippet: HopeSnippet | None = None
    is_custom_generated: bool
