"""
Care plan items: appointments, medications and self-care tasks with due dates.
"""

from sophera.plan.models import (
    PlanCategory,
    PlanFrequency,
    PlanItem,
    PlanItemCreate,
    PlanItemUpdate,
    PlanPriority,
)
from sophera.plan.repository import PlanItemRepository

__all__ = [
    "PlanCategory",
    "PlanFrequency",
    "PlanItem",
    "PlanItemCreate",
    "PlanItemRepository",
    "PlanItemUpdate",
    "PlanPriority",
]
