"""
Research item models.

source_type is free text ("pubmed", "book", "clinical_trial", ...) because
items are saved from many places; evidence_level is a fixed scale.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sophera.utils.db_fields import dumps, loads, parse_dt, utc_now
from sophera.utils.validators import require_text, validate_tags


class EvidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ResearchItem(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    title: str
    content: str
    source_type: str
    source_id: str | None = None
    source_name: str | None = None
    tags: list[str] = Field(default_factory=list)
    evidence_level: EvidenceLevel | None = None
    date_added: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "content": self.content,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "source_name": self.source_name,
            "tags": dumps(self.tags),
            "evidence_level": self.evidence_level,
            "date_added": self.date_added.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> ResearchItem:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            content=row["content"],
            source_type=row["source_type"],
            source_id=row.get("source_id"),
            source_name=row.get("source_name"),
            tags=loads(row.get("tags"), []),
            evidence_level=row.get("evidence_level"),
            date_added=parse_dt(row.get("date_added")) or utc_now(),
        )


class ResearchItemCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str
    content: str
    source_type: str
    source_id: str | None = None
    source_name: str | None = None
    tags: list[str] = Field(default_factory=list)
    evidence_level: EvidenceLevel | None = None

    @field_validator("title", "content", "source_type")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return require_text(v, "title/content/source_type")

    @field_validator("source_type")
    @classmethod
    def normalize_source_type(cls, v: str) -> str:
        return v.lower()

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        return validate_tags(v)
