"""
Saved trial models.

trial_id is the registry number (NCT01234567 for ClinicalTrials.gov). A user
saves a given trial at most once; saving it again refreshes the stored copy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from sophera.utils.db_fields import dumps, loads, parse_dt, utc_now
from sophera.utils.validators import clean_string_list, require_text


class SavedTrial(BaseModel):
    id: str
    user_id: str
    trial_id: str
    title: str
    phase: str | None = None
    status: str | None = None
    locations: list[str] = Field(default_factory=list)
    match_score: int | None = None
    notes: str | None = None
    date_added: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "trial_id": self.trial_id,
            "title": self.title,
            "phase": self.phase,
            "status": self.status,
            "locations": dumps(self.locations),
            "match_score": self.match_score,
            "notes": self.notes,
            "date_added": self.date_added.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> SavedTrial:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            trial_id=row["trial_id"],
            title=row["title"],
            phase=row.get("phase"),
            status=row.get("status"),
            locations=loads(row.get("locations"), []),
            match_score=row.get("match_score"),
            notes=row.get("notes"),
            date_added=parse_dt(row.get("date_added")) or utc_now(),
        )


class SavedTrialCreate(BaseModel):
    trial_id: str
    title: str
    phase: str | None = None
    status: str | None = None
    locations: list[str] = Field(default_factory=list)
    match_score: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None

    @field_validator("trial_id")
    @classmethod
    def normalize_trial_id(cls, v: str) -> str:
        return require_text(v, "trial_id").upper()

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        return require_text(v, "title")

    @field_validator("locations")
    @classmethod
    def clean_locations(cls, v: list[str]) -> list[str]:
        return clean_string_list(v, "locations")
