"""
Patient profile models.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from sophera.utils.db_fields import dumps, iso, loads, parse_date, parse_dt, utc_now
from sophera.utils.validators import parse_iso_date


class UserProfile(BaseModel):
    """A patient using Sophera. id is the identity provider's subject id."""

    id: str
    username: str
    display_name: str | None = None
    email: str | None = None
    diagnosis: str | None = None
    diagnosis_stage: str | None = None
    diagnosis_date: date | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "email": self.email,
            "diagnosis": self.diagnosis,
            "diagnosis_stage": self.diagnosis_stage,
            "diagnosis_date": iso(self.diagnosis_date),
            "preferences": dumps(self.preferences),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> UserProfile:
        return cls(
            id=row["id"],
            username=row["username"],
            display_name=row.get("display_name"),
            email=row.get("email"),
            diagnosis=row.get("diagnosis"),
            diagnosis_stage=row.get("diagnosis_stage"),
            diagnosis_date=parse_date(row.get("diagnosis_date")),
            preferences=loads(row.get("preferences"), {}),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class ProfileUpdate(BaseModel):
    """Partial profile update. Only fields present in the payload are written."""

    display_name: str | None = None
    diagnosis: str | None = None
    diagnosis_stage: str | None = None
    diagnosis_date: date | None = None

    @field_validator("diagnosis_date", mode="before")
    @classmethod
    def parse_diagnosis_date(cls, v: Any) -> date | None:
        return parse_iso_date(v)
