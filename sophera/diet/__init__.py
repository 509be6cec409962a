"""
Diet logs: meals with food items and optional macro counts.
"""

from sophera.diet.models import DailyTotals, DietLog, DietLogCreate, DietLogUpdate, MealType
from sophera.diet.repository import DietLogRepository

__all__ = [
    "DailyTotals",
    "DietLog",
    "DietLogCreate",
    "DietLogRepository",
    "DietLogUpdate",
    "MealType",
]
