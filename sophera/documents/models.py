"""
Document models: uploaded medical documents and their rule-based analysis.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sophera.utils.db_fields import dumps, loads, parse_date, parse_dt, utc_now
from sophera.utils.validators import parse_iso_date, require_text, validate_tags


class DocumentType(str, Enum):
    LAB_REPORT = "lab_report"
    IMAGING = "imaging"
    NOTES = "notes"
    BOOK = "book"
    OTHER = "other"


class Entity(BaseModel):
    """A matched span; start/end index into the original content."""

    type: str
    text: str
    start: int
    end: int
    category: str


class DatedItem(BaseModel):
    type: str
    date: str


class KeyInfo(BaseModel):
    lab_values: dict[str, float] = Field(default_factory=dict)
    diagnoses: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    procedures: list[str] = Field(default_factory=list)
    dates: list[DatedItem] = Field(default_factory=list)
    health_metrics: dict[str, float | None] = Field(default_factory=dict)


class DocumentAnalysis(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    entities: list[Entity] = Field(default_factory=list)
    key_info: KeyInfo = Field(default_factory=KeyInfo)
    summary: str
    source_type: DocumentType


class Document(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    title: str
    type: DocumentType = DocumentType.OTHER
    content: str
    parsed_content: DocumentAnalysis | None = None
    source_date: date | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "type": self.type,
            "content": self.content,
            "parsed_content": dumps(self.parsed_content) if self.parsed_content else None,
            "source_date": self.source_date.isoformat() if self.source_date else None,
            "tags": dumps(self.tags),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Document:
        parsed = loads(row.get("parsed_content"), None)
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            type=DocumentType(row.get("type") or "other"),
            content=row["content"],
            parsed_content=DocumentAnalysis.model_validate(parsed) if parsed else None,
            source_date=parse_date(row.get("source_date")),
            tags=loads(row.get("tags"), []),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class DocumentCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str
    type: DocumentType = DocumentType.OTHER
    content: str
    source_date: date | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "content")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return require_text(v, "title/content")

    @field_validator("source_date", mode="before")
    @classmethod
    def parse_source_date(cls, v: Any) -> date | None:
        return parse_iso_date(v)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        return validate_tags(v)


class DocumentSummary(BaseModel):
    """List view: everything except the full text and analysis."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    title: str
    type: DocumentType
    source_date: date | None = None
    tags: list[str] = Field(default_factory=list)
    has_analysis: bool = False
    created_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> DocumentSummary:
        return cls(
            id=document.id,
            title=document.title,
            type=document.type,
            source_date=document.source_date,
            tags=document.tags,
            has_analysis=document.parsed_content is not None,
            created_at=document.created_at,
        )


class DocumentSearchRequest(BaseModel):
    query: str

    @field_validator("query")
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        return require_text(v, "query")


class DocumentSearchResult(BaseModel):
    document_id: str
    title: str
    type: str
    score: int
    snippet: str


class DocumentQuestion(BaseModel):
    question: str

    @field_validator("question")
    @classmethod
    def question_not_empty(cls, v: str) -> str:
        return require_text(v, "question")


class DocumentAnswer(BaseModel):
    answer: str
    model_used: str | None = None
    grounded: bool
