"""
Journal log models.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator

from sophera.utils.db_fields import dumps, loads, parse_date, parse_dt, utc_now
from sophera.utils.validators import clean_string_list, parse_iso_date, require_text

Score = Annotated[int, Field(ge=0, le=10)]


class JournalLog(BaseModel):
    id: str
    user_id: str
    entry_date: date
    content: str
    mood: str | None = None
    energy_level: Score | None = None
    sleep_quality: Score | None = None
    pain_level: Score | None = None
    symptoms: list[str] = Field(default_factory=list)
    medication: list[str] = Field(default_factory=list)
    food_diary: str | None = None
    images: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "entry_date": self.entry_date.isoformat(),
            "content": self.content,
            "mood": self.mood,
            "energy_level": self.energy_level,
            "sleep_quality": self.sleep_quality,
            "pain_level": self.pain_level,
            "symptoms": dumps(self.symptoms),
            "medication": dumps(self.medication),
            "food_diary": self.food_diary,
            "images": dumps(self.images),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> JournalLog:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            entry_date=parse_date(row["entry_date"]),
            content=row["content"],
            mood=row.get("mood"),
            energy_level=row.get("energy_level"),
            sleep_quality=row.get("sleep_quality"),
            pain_level=row.get("pain_level"),
            symptoms=loads(row.get("symptoms"), []),
            medication=loads(row.get("medication"), []),
            food_diary=row.get("food_diary"),
            images=loads(row.get("images"), []),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class JournalLogCreate(BaseModel):
    entry_date: date = Field(default_factory=date.today)
    content: str
    mood: str | None = None
    energy_level: Score | None = None
    sleep_quality: Score | None = None
    pain_level: Score | None = None
    symptoms: list[str] = Field(default_factory=list)
    medication: list[str] = Field(default_factory=list)
    food_diary: str | None = None
    images: list[str] = Field(default_factory=list)

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, v: str) -> str:
        return require_text(v, "content")

    @field_validator("entry_date", mode="before")
    @classmethod
    def parse_entry_date(cls, v: Any) -> date | None:
        return parse_iso_date(v)

    @field_validator("symptoms", "medication", "images")
    @classmethod
    def clean_lists(cls, v: list[str]) -> list[str]:
        return clean_string_list(v)


class JournalLogUpdate(BaseModel):
    entry_date: date | None = None
    content: str | None = None
    mood: str | None = None
    energy_level: Score | None = None
    sleep_quality: Score | None = None
    pain_level: Score | None = None
    symptoms: list[str] | None = None
    medication: list[str] | None = None
    food_diary: str | None = None
    images: list[str] | None = None

    @field_validator("entry_date", mode="before")
    @classmethod
    def parse_entry_date(cls, v: Any) -> date | None:
        return parse_iso_date(v)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else require_text(v, "content")
