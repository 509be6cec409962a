"""
Tests for treatment timeline generation.

Covers:
- Patient factor formatting for the prompt
- Required field checks on model output
- camelCase and snake_case input
- Duplicate phase and milestone ID repair
- Default disclaimer
- generate_timeline error paths (patched LLM)
"""

from __future__ import annotations

import json

import pytest

from sophera.llm import Provider
from sophera.timeline import service
from sophera.timeline.models import PatientFactors
from sophera.timeline.service import (
    DEFAULT_DISCLAIMER,
    TimelineGenerationError,
    build_prompt,
    format_patient_factors,
    generate_timeline,
    parse_timeline,
)


def make_timeline_data(**overrides):
    data = {
        "treatment_name": "FLOT",
        "treatment_type": "chemotherapy",
        "duration": 120,
        "phases": [
            {
                "id": "phase-1",
                "name": "Neoadjuvant chemotherapy",
                "start_day": 0,
                "end_day": 56,
                "category": "neoadjuvant",
                "milestones": [
                    {"id": "m-1", "name": "Cycle 1", "day": 0, "category": "treatment"},
                    {"id": "m-2", "name": "Restaging CT", "day": 50, "category": "assessment"},
                ],
                "side_effects": {"common": ["fatigue"], "severe": [], "timing": "days 2-5"},
            },
            {
                "id": "phase-2",
                "name": "Surgery",
                "start_day": 70,
                "end_day": 72,
                "category": "surgery",
                "milestones": [],
            },
        ],
        "disclaimer": "Schedules vary.",
    }
    data.update(overrides)
    return data


# ============================================================================
# Prompt
# ============================================================================


def test_format_patient_factors():
    factors = PatientFactors(
        age=64,
        performance_status="ECOG 1",
        stage="III",
        comorbidities=["diabetes", "hypertension"],
        previous_treatments=["radiation"],
    )

    assert format_patient_factors(factors) == (
        "Age: 64 years\n"
        "Performance Status: ECOG 1\n"
        "Cancer Stage: III\n"
        "Comorbidities: diabetes, hypertension\n"
        "Previous Treatments: radiation"
    )


def test_format_patient_factors_skips_missing():
    assert format_patient_factors(None) == ""
    assert format_patient_factors(PatientFactors()) == ""
    assert format_patient_factors(PatientFactors(stage="IV")) == "Cancer Stage: IV"


def test_prompt_includes_factors_block_only_when_present():
    assert "Consider these patient factors" not in build_prompt("FLOT")

    prompt = build_prompt("FLOT", PatientFactors(age=50))
    assert '"FLOT"' in prompt
    assert "Consider these patient factors:\nAge: 50 years" in prompt


# ============================================================================
# parse_timeline
# ============================================================================


class TestParseTimeline:
    def test_valid_timeline(self):
        timeline = parse_timeline(make_timeline_data())

        assert timeline.treatment_name == "FLOT"
        assert [p.id for p in timeline.phases] == ["phase-1", "phase-2"]
        assert timeline.phases[0].side_effects.common == ["fatigue"]
        assert timeline.disclaimer == "Schedules vary."

    def test_camel_case_input(self):
        data = make_timeline_data()
        data["treatmentName"] = data.pop("treatment_name")
        data["treatmentType"] = data.pop("treatment_type")
        for phase in data["phases"]:
            phase["startDay"] = phase.pop("start_day")
            phase["endDay"] = phase.pop("end_day")

        timeline = parse_timeline(data)

        assert timeline.treatment_type == "chemotherapy"
        assert timeline.phases[1].start_day == 70
        assert "treatment_name" in timeline.model_dump()

    def test_fractional_days_accepted(self):
        data = make_timeline_data(duration=42.5)
        data["phases"][0]["end_day"] = 35.5
        data["phases"][0]["milestones"][1]["day"] = 10.5

        timeline = parse_timeline(data)

        assert timeline.duration == 42.5
        assert timeline.phases[0].end_day == 35.5
        assert timeline.phases[0].milestones[1].day == 10.5
        assert timeline.phases[1].start_day == 70
        assert isinstance(timeline.phases[1].start_day, int)

    def test_missing_disclaimer_gets_default(self):
        timeline = parse_timeline(make_timeline_data(disclaimer=""))
        assert timeline.disclaimer == DEFAULT_DISCLAIMER

    @pytest.mark.parametrize(
        "overrides",
        [
            {"treatment_name": ""},
            {"treatment_type": None},
            {"duration": "120 days"},
            {"duration": True},
            {"phases": "none"},
        ],
    )
    def test_missing_required_fields_rejected(self, overrides):
        with pytest.raises(TimelineGenerationError):
            parse_timeline(make_timeline_data(**overrides))

    def test_non_object_rejected(self):
        with pytest.raises(TimelineGenerationError, match="not a JSON object"):
            parse_timeline([make_timeline_data()])

    def test_invalid_phase_category_rejected(self):
        data = make_timeline_data()
        data["phases"][0]["category"] = "vacation"

        with pytest.raises(TimelineGenerationError, match="failed validation"):
            parse_timeline(data)

    def test_duplicate_ids_made_unique(self):
        data = make_timeline_data()
        data["phases"][1]["id"] = "phase-1"
        data["phases"][1]["milestones"] = [
            {"id": "m-1", "name": "Surgery day", "day": 70, "category": "treatment"}
        ]

        timeline = parse_timeline(data)

        phase_ids = [p.id for p in timeline.phases]
        milestone_ids = [m.id for p in timeline.phases for m in p.milestones]
        assert len(set(phase_ids)) == 2
        assert phase_ids[0] == "phase-1"
        assert phase_ids[1].startswith("phase-1-")
        assert len(set(milestone_ids)) == 3


# ============================================================================
# generate_timeline
# ============================================================================


class TestGenerateTimeline:
    def test_generates_from_llm_json(self, monkeypatch):
        calls = []

        def fake_call_llm(prompt, provider, counter_prefix, **kwargs):
            calls.append((provider, kwargs))
            return "```json\n" + json.dumps(make_timeline_data()) + "\n```"

        monkeypatch.setattr(service, "available_providers", lambda: [Provider.GPT])
        monkeypatch.setattr(service, "call_llm", fake_call_llm)

        timeline = generate_timeline("FLOT", PatientFactors(age=60))

        assert timeline.duration == 120
        assert calls[0][0] == Provider.GPT
        assert calls[0][1]["json_output"] is True

    def test_unparseable_output_raises(self, monkeypatch):
        monkeypatch.setattr(service, "call_llm", lambda *args, **kwargs: "Sorry, no timeline")

        with pytest.raises(TimelineGenerationError, match="parse"):
            generate_timeline("FLOT")

    def test_llm_failure_raises(self, monkeypatch):
        def failing_call(*args, **kwargs):
            raise TimeoutError("slow vendor")

        monkeypatch.setattr(service, "call_llm", failing_call)

        with pytest.raises(TimelineGenerationError, match="Failed to generate"):
            generate_timeline("FLOT")
