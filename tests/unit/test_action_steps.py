"""
Tests for personalized action steps.

Covers:
- Patient context assembled from profile and recent records
- Parsing steps from arrays or {"steps": [...]} objects
- Unknown categories dropped, malformed steps skipped
- Defaults whenever the model cannot be used
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from sophera.assistant import action_steps
from sophera.assistant.action_steps import (
    DEFAULT_ACTION_STEPS,
    build_user_context,
    parse_action_steps,
    personalized_action_steps,
)
from sophera.diet.models import DietLogCreate
from sophera.diet.repository import DietLogRepository
from sophera.journal.models import JournalLogCreate
from sophera.journal.repository import JournalLogRepository
from sophera.llm import Provider
from sophera.plan.models import PlanItemCreate
from sophera.plan.repository import PlanItemRepository
from sophera.treatments.models import TreatmentCreate
from sophera.treatments.repository import TreatmentRepository
from sophera.users.models import ProfileUpdate
from sophera.users.repository import UserRepository

USER_ID = "user-test-1"


def test_context_without_records(db):
    assert build_user_context(USER_ID) == "No patient records yet."


def test_context_summarizes_recent_records(db):
    UserRepository.upsert(USER_ID, username="pat")
    UserRepository.update_profile(
        USER_ID, ProfileUpdate(diagnosis="Esophageal cancer", diagnosis_stage="III")
    )
    TreatmentRepository.create(USER_ID, TreatmentCreate(name="FLOT", type="chemotherapy"))
    JournalLogRepository.create(
        USER_ID, JournalLogCreate(content="Tired after infusion", mood="low", pain_level=4)
    )
    DietLogRepository.create(
        USER_ID, DietLogCreate(meal_type="lunch", food_items=["soup", "bread"])
    )
    PlanItemRepository.create(
        USER_ID,
        PlanItemCreate(title="Blood work", due_date=date.today() + timedelta(days=2)),
    )

    context = build_user_context(USER_ID)

    assert context.startswith("PATIENT INFORMATION:\n")
    assert "- Diagnosis: Esophageal cancer (III)" in context
    assert "- Active treatments: FLOT (chemotherapy)" in context
    assert "Tired after infusion [mood low, pain 4/10]" in context
    assert "(lunch): soup, bread" in context
    assert "- Upcoming plan items: Blood work" in context


class TestParseActionSteps:
    def test_object_with_steps(self):
        steps = parse_action_steps(
            {"steps": [{"title": "Walk", "description": "Ten minutes", "category": "Exercise"}]}
        )

        assert steps[0].title == "Walk"
        assert steps[0].category == "exercise"

    def test_plain_array_capped_at_four(self):
        payload = [{"title": f"Step {i}", "description": "d"} for i in range(6)]
        assert len(parse_action_steps(payload)) == 4

    def test_unknown_category_becomes_none(self):
        steps = parse_action_steps([{"title": "Paint", "description": "d", "category": "art"}])
        assert steps[0].category is None

    def test_malformed_steps_skipped(self):
        steps = parse_action_steps([{"title": "No description"}, {"title": "Ok", "description": "d"}])
        assert [s.title for s in steps] == ["Ok"]

    @pytest.mark.parametrize("payload", [{"steps": "none"}, "text", [], [{"bad": 1}]])
    def test_unusable_payload_raises(self, payload):
        with pytest.raises(ValueError):
            parse_action_steps(payload)


class TestPersonalizedActionSteps:
    def test_defaults_without_provider(self):
        assert personalized_action_steps("context") == list(DEFAULT_ACTION_STEPS)

    def test_steps_from_model(self, monkeypatch):
        monkeypatch.setattr(action_steps, "available_providers", lambda: [Provider.GPT])
        monkeypatch.setattr(
            action_steps,
            "call_llm",
            lambda *args, **kwargs: '{"steps": [{"title": "Stretch", "description": "Gently"}]}',
        )

        steps = personalized_action_steps("context")

        assert [s.title for s in steps] == ["Stretch"]

    def test_defaults_on_bad_json(self, monkeypatch):
        monkeypatch.setattr(action_steps, "available_providers", lambda: [Provider.GPT])
        monkeypatch.setattr(action_steps, "call_llm", lambda *args, **kwargs: "no json here")

        assert personalized_action_steps("context") == list(DEFAULT_ACTION_STEPS)
