"""
Personalized action steps for the dashboard.

The model gets a short plain-text summary of the patient's recent records and
returns four suggestions as JSON. Any failure (no provider, vendor error,
unparseable or wrongly shaped JSON) yields DEFAULT_ACTION_STEPS.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from sophera.assistant.models import ActionStep, ActionStepCategory
from sophera.diet.repository import DietLogRepository
from sophera.journal.repository import JournalLogRepository
from sophera.llm import available_providers, call_llm, extract_json
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter
from sophera.plan.repository import PlanItemRepository
from sophera.treatments.repository import TreatmentRepository
from sophera.users.repository import UserRepository
from sophera.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

MAX_STEPS = 4

DEFAULT_ACTION_STEPS: tuple[ActionStep, ...] = (
    ActionStep(
        title="Schedule a follow-up appointment",
        description="Check in with your oncology team about how your current treatment is going.",
        category=ActionStepCategory.TREATMENT,
    ),
    ActionStep(
        title="Try gentle yoga for 15 minutes",
        description="Light movement and breathing can ease stress and fatigue during treatment.",
        category=ActionStepCategory.EXERCISE,
    ),
    ActionStep(
        title="Add more protein to your meals",
        description="Protein helps your body repair tissue and keep strength up through recovery.",
        category=ActionStepCategory.NUTRITION,
    ),
    ActionStep(
        title="Read about new treatment options",
        description="Note questions about newer approaches, such as immunotherapy, to discuss with your doctor.",
        category=ActionStepCategory.RESEARCH,
    ),
)

ACTION_STEPS_SYSTEM_INSTRUCTION = (
    "You are Sophera, an assistant for people living with cancer. You suggest "
    "small, realistic steps that support wellbeing. Never change or stop a "
    "treatment; suggest discussing medical decisions with the care team."
)

_PROMPT_TEMPLATE = """Based on the patient information below, suggest {count} personalized, actionable steps.
Mix categories: exercise, nutrition, mental, treatment, social, research.
Keep each step realistic and specific to this patient.

{context}

Respond with a JSON object of the form:
{{"steps": [{{"title": "Brief action title", "description": "One or two sentences", "category": "exercise|nutrition|mental|treatment|social|research", "source": "optional"}}]}}"""


def build_user_context(user_id: str) -> str:
    """Plain-text summary of the user's profile and recent records."""
    lines: list[str] = []

    profile = UserRepository.get(user_id)
    if profile and profile.diagnosis:
        stage = f" ({profile.diagnosis_stage})" if profile.diagnosis_stage else ""
        lines.append(f"Diagnosis: {profile.diagnosis}{stage}")

    treatments = TreatmentRepository.list_by_user(user_id, active=True, limit=5)
    if treatments:
        lines.append("Active treatments: " + ", ".join(f"{t.name} ({t.type})" for t in treatments))

    journal = JournalLogRepository.recent(user_id, limit=3)
    for log in journal:
        details = [f"mood {log.mood}" if log.mood else None]
        if log.pain_level is not None:
            details.append(f"pain {log.pain_level}/10")
        if log.energy_level is not None:
            details.append(f"energy {log.energy_level}/10")
        summary = ", ".join(d for d in details if d)
        lines.append(
            f"Journal {log.entry_date.isoformat()}: "
            f"{sanitize_for_prompt(log.content, max_length=200)}"
            + (f" [{summary}]" if summary else "")
        )

    diet = DietLogRepository.recent(user_id, limit=3)
    for meal in diet:
        foods = ", ".join(meal.food_items) or "no items listed"
        lines.append(f"Meal {meal.meal_date.isoformat()} ({meal.meal_type}): {foods}")

    upcoming = PlanItemRepository.upcoming(user_id, days=7)
    if upcoming:
        lines.append("Upcoming plan items: " + ", ".join(item.title for item in upcoming[:5]))

    if not lines:
        return "No patient records yet."
    return "PATIENT INFORMATION:\n" + "\n".join(f"- {line}" for line in lines)


def parse_action_steps(payload: Any) -> list[ActionStep]:
    """
    Steps from a JSON array or an object holding one under "steps".

    Raises:
        ValueError: If the payload has no usable steps
    """
    if isinstance(payload, dict):
        payload = payload.get("steps")
    if not isinstance(payload, list):
        raise ValueError("Action steps response is not a list")

    steps = []
    for item in payload[:MAX_STEPS]:
        try:
            steps.append(ActionStep.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping malformed action step: %s", e.error_count())
    if not steps:
        raise ValueError("Action steps response has no valid steps")
    return steps


def personalized_action_steps(context: str) -> list[ActionStep]:
    """
    Up to four suggestions for the given patient context.

    Side Effects:
        - One JSON-mode LLM call when a provider is configured
        - Increments action_steps.* counters
    """
    providers = available_providers()
    if not providers:
        counter("action_steps.default.no_provider")
        return list(DEFAULT_ACTION_STEPS)

    try:
        text = call_llm(
            _PROMPT_TEMPLATE.format(count=MAX_STEPS, context=context),
            provider=providers[0],
            counter_prefix="action_steps",
            system_instruction=ACTION_STEPS_SYSTEM_INSTRUCTION,
            json_output=True,
        )
        steps = parse_action_steps(extract_json(text))
    except Exception as e:
        logger.error("Action step generation failed, using defaults: %s", e)
        counter("action_steps.default.error")
        return list(DEFAULT_ACTION_STEPS)

    counter("action_steps.generated")
    return steps
