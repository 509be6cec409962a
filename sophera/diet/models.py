"""
Diet log models.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sophera.utils.db_fields import dumps, loads, parse_date, parse_dt, utc_now
from sophera.utils.validators import clean_string_list, parse_iso_date

Amount = Annotated[float, Field(ge=0)]


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
    OTHER = "other"


class DietLog(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    meal_date: date
    meal_type: MealType
    food_items: list[str] = Field(default_factory=list)
    calories: Amount | None = None
    carbs: Amount | None = None
    protein: Amount | None = None
    fat: Amount | None = None
    notes: str | None = None
    images: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "meal_date": self.meal_date.isoformat(),
            "meal_type": self.meal_type,
            "food_items": dumps(self.food_items),
            "calories": self.calories,
            "carbs": self.carbs,
            "protein": self.protein,
            "fat": self.fat,
            "notes": self.notes,
            "images": dumps(self.images),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> DietLog:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            meal_date=parse_date(row["meal_date"]),
            meal_type=MealType(row["meal_type"]),
            food_items=loads(row.get("food_items"), []),
            calories=row.get("calories"),
            carbs=row.get("carbs"),
            protein=row.get("protein"),
            fat=row.get("fat"),
            notes=row.get("notes"),
            images=loads(row.get("images"), []),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
        )


class DietLogCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    meal_date: date = Field(default_factory=date.today)
    meal_type: MealType = MealType.OTHER
    food_items: list[str] = Field(default_factory=list)
    calories: Amount | None = None
    carbs: Amount | None = None
    protein: Amount | None = None
    fat: Amount | None = None
    notes: str | None = None
    images: list[str] = Field(default_factory=list)

    @field_validator("meal_date", mode="before")
    @classmethod
    def parse_meal_date(cls, v: Any) -> date | None:
        return parse_iso_date(v)

    @field_validator("food_items", "images")
    @classmethod
    def clean_lists(cls, v: list[str]) -> list[str]:
        return clean_string_list(v)


class DietLogUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    meal_date: date | None = None
    meal_type: MealType | None = None
    food_items: list[str] | None = None
    calories: Amount | None = None
    carbs: Amount | None = None
    protein: Amount | None = None
    fat: Amount | None = None
    notes: str | None = None
    images: list[str] | None = None

    @field_validator("meal_date", mode="before")
    @classmethod
    def parse_meal_date(cls, v: Any) -> date | None:
        return parse_iso_date(v)


class DailyTotals(BaseModel):
    """Summed nutrition for one calendar day. Missing values count as zero."""

    day: date
    meals: int = 0
    calories: float = 0.0
    carbs: float = 0.0
    protein: float = 0.0
    fat: float = 0.0
