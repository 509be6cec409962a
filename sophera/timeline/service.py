"""
Treatment timeline generation.

One JSON-mode LLM call produces the whole timeline. The response is checked
for the required top-level fields, phase and milestone IDs are made unique,
and a default disclaimer is filled in when the model leaves it out.
"""

from __future__ import annotations

import random
import string
from typing import Any

from pydantic import ValidationError

from sophera.llm import Provider, available_providers, call_llm, extract_json
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter, log_event
from sophera.timeline.models import PatientFactors, TreatmentTimeline
from sophera.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

DEFAULT_DISCLAIMER = (
    "This timeline is a general estimate. Actual treatment schedules vary with "
    "your diagnosis, response to treatment and your care team's recommendations. "
    "Always follow the plan set by your healthcare providers."
)

TIMELINE_SYSTEM_INSTRUCTION = (
    "You are an expert oncologist who plans cancer treatment schedules. "
    "Respond with a single JSON object."
)

_ID_ALPHABET = string.ascii_lowercase + string.digits

_PROMPT_TEMPLATE = """Generate a detailed treatment timeline for a patient receiving "{treatment_name}".
{factors_block}
Include every relevant phase (neoadjuvant, surgery, adjuvant, recovery, monitoring) with realistic timeframes.
For each phase list key milestones (treatments, assessments, recovery markers) and, for treatment phases, expected side effects.

Return a JSON object with these fields:
- treatment_name: string
- treatment_type: string, e.g. "multimodal", "surgical", "chemotherapy"
- duration: total days, integer
- phases: list of objects with
    id (unique string), name, description, start_day, end_day,
    category (one of neoadjuvant, surgery, adjuvant, monitoring, recovery),
    milestones: list of {{id (unique string), name, description, day,
        category (one of treatment, assessment, recovery, follow-up), important (boolean)}},
    side_effects (optional): {{common: [string], severe: [string], timing: string}}
- disclaimer: string about how timelines vary between patients

Keep durations realistic (for example 5-6 weeks of neoadjuvant therapy, 1-2 days for surgery, 4-8 weeks of recovery)."""


class TimelineGenerationError(RuntimeError):
    """Raised when the model's output cannot be turned into a timeline."""


def format_patient_factors(factors: PatientFactors | None) -> str:
    """One "Label: value" line per present factor; empty string when none."""
    if factors is None:
        return ""

    lines = []
    if factors.age:
        lines.append(f"Age: {factors.age} years")
    if factors.performance_status:
        lines.append(f"Performance Status: {factors.performance_status}")
    if factors.stage:
        lines.append(f"Cancer Stage: {factors.stage}")
    if factors.comorbidities:
        lines.append(f"Comorbidities: {', '.join(factors.comorbidities)}")
    if factors.previous_treatments:
        lines.append(f"Previous Treatments: {', '.join(factors.previous_treatments)}")
    return "\n".join(lines)


def build_prompt(treatment_name: str, factors: PatientFactors | None = None) -> str:
    factors_text = format_patient_factors(factors)
    factors_block = f"\nConsider these patient factors:\n{factors_text}\n" if factors_text else ""
    return _PROMPT_TEMPLATE.format(
        treatment_name=sanitize_for_prompt(treatment_name, max_length=200),
        factors_block=factors_block,
    )


def _first_present(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) not in (None, ""):
            return data[key]
    return None


def _check_required(data: Any) -> None:
    if not isinstance(data, dict):
        raise TimelineGenerationError("Timeline response is not a JSON object")
    if not _first_present(data, "treatment_name", "treatmentName"):
        raise TimelineGenerationError("Timeline response has no treatment name")
    if not _first_present(data, "treatment_type", "treatmentType"):
        raise TimelineGenerationError("Timeline response has no treatment type")
    duration = data.get("duration")
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise TimelineGenerationError("Timeline response has no numeric duration")
    if not isinstance(data.get("phases"), list):
        raise TimelineGenerationError("Timeline response has no phases list")


def _unique_id(base: str, seen: set[str]) -> str:
    candidate = base
    while candidate in seen:
        candidate = f"{base}-{''.join(random.choices(_ID_ALPHABET, k=5))}"
    seen.add(candidate)
    return candidate


def ensure_unique_ids(timeline: TreatmentTimeline) -> TreatmentTimeline:
    """
    Suffix duplicate IDs in place. Phase IDs must be unique among phases and
    milestone IDs across the whole timeline.
    """
    phase_ids: set[str] = set()
    milestone_ids: set[str] = set()
    for phase in timeline.phases:
        phase.id = _unique_id(phase.id, phase_ids)
        for milestone in phase.milestones:
            milestone.id = _unique_id(milestone.id, milestone_ids)
    return timeline


def parse_timeline(data: Any) -> TreatmentTimeline:
    """
    Validate decoded LLM output into a TreatmentTimeline.

    Raises:
        TimelineGenerationError: On missing fields or invalid phase data
    """
    _check_required(data)
    if not data.get("disclaimer"):
        data = {**data, "disclaimer": DEFAULT_DISCLAIMER}

    try:
        timeline = TreatmentTimeline.model_validate(data)
    except ValidationError as e:
        raise TimelineGenerationError(
            f"Timeline response failed validation ({e.error_count()} errors)"
        ) from e

    return ensure_unique_ids(timeline)


def generate_timeline(
    treatment_name: str,
    factors: PatientFactors | None = None,
) -> TreatmentTimeline:
    """
    Ask the model for a treatment timeline.

    Raises:
        TimelineGenerationError: When no provider is configured, the call
            fails, or the output is unusable

    Side Effects:
        - One JSON-mode LLM call (with retries)
        - Logs a timeline.generated event
    """
    providers = available_providers()
    provider = providers[0] if providers else Provider.GEMINI

    try:
        text = call_llm(
            build_prompt(treatment_name, factors),
            provider=provider,
            counter_prefix="timeline",
            system_instruction=TIMELINE_SYSTEM_INSTRUCTION,
            json_output=True,
        )
    except Exception as e:
        counter("timeline.llm_error")
        logger.error("Timeline LLM call failed: %s", e)
        raise TimelineGenerationError(f"Failed to generate treatment timeline: {e}") from e

    try:
        data = extract_json(text)
    except ValueError as e:
        counter("timeline.parse_error")
        raise TimelineGenerationError("Failed to parse the treatment timeline") from e

    timeline = parse_timeline(data)
    counter("timeline.generated")
    log_event(
        "timeline.generated",
        provider=provider.value,
        phases=len(timeline.phases),
        duration=timeline.duration,
    )
    return timeline
