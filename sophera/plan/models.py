"""
Plan item models.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sophera.utils.db_fields import iso, parse_date, parse_dt, utc_now
from sophera.utils.validators import parse_iso_date, require_text, validate_date_range


class PlanCategory(str, Enum):
    TREATMENT = "treatment"
    MEDICATION = "medication"
    EXERCISE = "exercise"
    NUTRITION = "nutrition"
    APPOINTMENT = "appointment"
    SELF_CARE = "self_care"
    OTHER = "other"


class PlanFrequency(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class PlanPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PlanItem(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    title: str
    description: str | None = None
    category: PlanCategory = PlanCategory.OTHER
    start_date: date | None = None
    due_date: date | None = None
    frequency: PlanFrequency = PlanFrequency.ONCE
    priority: PlanPriority = PlanPriority.MEDIUM
    is_completed: bool = False
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "start_date": iso(self.start_date),
            "due_date": iso(self.due_date),
            "frequency": self.frequency,
            "priority": self.priority,
            "is_completed": int(self.is_completed),
            "completed_at": iso(self.completed_at),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> PlanItem:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row.get("description"),
            category=PlanCategory(row["category"]),
            start_date=parse_date(row.get("start_date")),
            due_date=parse_date(row.get("due_date")),
            frequency=PlanFrequency(row.get("frequency") or "once"),
            priority=PlanPriority(row.get("priority") or "medium"),
            is_completed=bool(row.get("is_completed", 0)),
            completed_at=parse_dt(row.get("completed_at")),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class PlanItemCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str
    description: str | None = None
    category: PlanCategory = PlanCategory.OTHER
    start_date: date | None = None
    due_date: date | None = None
    frequency: PlanFrequency = PlanFrequency.ONCE
    priority: PlanPriority = PlanPriority.MEDIUM

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        return require_text(v, "title")

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> date | None:
        return parse_iso_date(v)

    @model_validator(mode="after")
    def check_range(self) -> PlanItemCreate:
        validate_date_range(self.start_date, self.due_date, "start_date", "due_date")
        return self


class PlanItemUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str | None = None
    description: str | None = None
    category: PlanCategory | None = None
    start_date: date | None = None
    due_date: date | None = None
    frequency: PlanFrequency | None = None
    priority: PlanPriority | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else require_text(v, "title")

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> date | None:
        return parse_iso_date(v)
