"""
Treatment domain models.

A treatment is one regimen (chemotherapy, radiation, a medication, ...) with
free-form notes plus two append-only logs: side effects and effectiveness
ratings, both scored 1-10.
"""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from sophera.utils.db_fields import dumps, iso, loads, parse_date, parse_dt, utc_now
from sophera.utils.validators import parse_iso_date, require_text, validate_date_range


class SideEffectEntry(BaseModel):
    name: str
    severity: int = Field(..., ge=1, le=10)
    date: dt.date | None = None
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return require_text(v, "name")


class EffectivenessEntry(BaseModel):
    metric: str
    rating: int = Field(..., ge=1, le=10)
    date: dt.date | None = None
    notes: str | None = None

    @field_validator("metric")
    @classmethod
    def metric_not_empty(cls, v: str) -> str:
        return require_text(v, "metric")


class Treatment(BaseModel):
    id: str
    user_id: str
    name: str
    type: str
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None
    side_effects: list[SideEffectEntry] = Field(default_factory=list)
    effectiveness: list[EffectivenessEntry] = Field(default_factory=list)
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "notes": self.notes,
            "side_effects": dumps(self.side_effects),
            "effectiveness": dumps(self.effectiveness),
            "active": int(self.active),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Treatment:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            type=row["type"],
            start_date=parse_date(row.get("start_date")),
            end_date=parse_date(row.get("end_date")),
            notes=row.get("notes"),
            side_effects=loads(row.get("side_effects"), []),
            effectiveness=loads(row.get("effectiveness"), []),
            active=bool(row.get("active", 1)),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class TreatmentCreate(BaseModel):
    name: str
    type: str
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None
    side_effects: list[SideEffectEntry] = Field(default_factory=list)
    effectiveness: list[EffectivenessEntry] = Field(default_factory=list)
    active: bool = True

    @field_validator("name", "type")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return require_text(v, "name/type")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> date | None:
        return parse_iso_date(v)

    @model_validator(mode="after")
    def check_range(self) -> TreatmentCreate:
        validate_date_range(self.start_date, self.end_date)
        return self


class TreatmentUpdate(BaseModel):
    """Partial update; fields absent from the payload are left unchanged."""

    name: str | None = None
    type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None
    active: bool | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> date | None:
        return parse_iso_date(v)

    @field_validator("name", "type")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        return None if v is None else require_text(v, "name/type")
