"""
Dashboard aggregate.

Reads from every record repository; writes nothing.
"""

from __future__ import annotations

from datetime import date, timedelta

from pydantic import BaseModel

from sophera.config import API_UPCOMING_DAYS_DEFAULT, DASHBOARD_RECENT_ITEMS
from sophera.diet.models import DietLog
from sophera.diet.repository import DietLogRepository
from sophera.hope.models import HopeSnippet
from sophera.hope.repository import HopeSnippetRepository
from sophera.journal.models import JournalLog
from sophera.journal.repository import JournalLogRepository
from sophera.observability.telemetry import time_block
from sophera.plan.models import PlanItem
from sophera.plan.repository import PlanItemRepository
from sophera.treatments.models import Treatment
from sophera.treatments.repository import TreatmentRepository
from sophera.users.models import UserProfile
from sophera.users.repository import UserRepository


class DashboardStats(BaseModel):
    treatments_active: int
    journal_entries_7d: int
    plan_items_due_7d: int
    plan_items_completed: int


class Dashboard(BaseModel):
    profile: UserProfile | None
    active_treatments: list[Treatment]
    recent_journal_logs: list[JournalLog]
    recent_diet_logs: list[DietLog]
    upcoming_plan_items: list[PlanItem]
    hope_snippet: HopeSnippet | None
    stats: DashboardStats


def build_dashboard(user_id: str, today: date | None = None) -> Dashboard:
    today = today or date.today()

    with time_block("dashboard.build"):
        active = TreatmentRepository.list_by_user(user_id, active=True)
        upcoming = PlanItemRepository.upcoming(
            user_id, days=API_UPCOMING_DAYS_DEFAULT, today=today
        )
        # Last 7 days including today
        week_start = today - timedelta(days=6)

        return Dashboard(
            profile=UserRepository.get(user_id),
            active_treatments=active,
            recent_journal_logs=JournalLogRepository.recent(user_id, limit=DASHBOARD_RECENT_ITEMS),
            recent_diet_logs=DietLogRepository.recent(user_id, limit=DASHBOARD_RECENT_ITEMS),
            upcoming_plan_items=upcoming[:DASHBOARD_RECENT_ITEMS],
            hope_snippet=HopeSnippetRepository.random(user_id),
            stats=DashboardStats(
                treatments_active=len(active),
                journal_entries_7d=JournalLogRepository.count_since(user_id, week_start),
                plan_items_due_7d=len(upcoming),
                plan_items_completed=PlanItemRepository.count_completed(user_id),
            ),
        )
