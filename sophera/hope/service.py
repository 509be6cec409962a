"""
Hope service: detects hope / emotional-support requests and answers them.

Answer order for generate_hope_message:
    1. a snippet matching the request category (own snippets preferred)
    2. a short message written by the LLM from the patient's context
    3. a fixed supportive message
Errors never propagate; the worst case is the fixed message.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from sophera.assistant.types import QueryType
from sophera.hope.models import HopeCategory, HopeResponse, HopeSnippet
from sophera.hope.repository import HopeSnippetRepository
from sophera.journal.models import JournalLog
from sophera.journal.repository import JournalLogRepository
from sophera.llm import available_providers, call_llm
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter
from sophera.users.models import UserProfile
from sophera.users.repository import UserRepository
from sophera.utils.redaction import sanitize_for_prompt

logger = get_logger(__name__)

HOPE_PHRASES = (
    "inspire me",
    "give me hope",
    "hope message",
    "hopeful",
    "stories of hope",
    "success story",
    "positive outlook",
    "share hope",
    "hope quote",
    "inspirational quote",
    "give me strength",
    "uplifting message",
)

EMOTIONAL_SUPPORT_PHRASES = (
    "feeling down",
    "feeling scared",
    "emotional support",
    "feeling overwhelmed",
    "feeling anxious",
    "feeling depressed",
    "need support",
    "support me",
    "coping with",
    "help me process",
    "struggling with emotions",
    "emotional help",
)

DEFAULT_SUPPORT_MESSAGE = (
    "We're here to support you on your journey. Stay strong and remember that "
    "you're never alone in this."
)
ERROR_SUPPORT_MESSAGE = (
    "Even in difficult moments, remember that each day brings new possibilities. "
    "You have the strength within you."
)

HOPE_SYSTEM_INSTRUCTION = (
    "You write brief, warm and honest messages of hope for people living with "
    "cancer. Never give medical advice or promise outcomes. Two to four sentences."
)


def analyze_hope_query(text: str) -> QueryType | None:
    """HOPE or EMOTIONAL_SUPPORT when a trigger phrase appears, else None."""
    lowered = text.lower()
    if any(phrase in lowered for phrase in HOPE_PHRASES):
        return QueryType.HOPE
    if any(phrase in lowered for phrase in EMOTIONAL_SUPPORT_PHRASES):
        return QueryType.EMOTIONAL_SUPPORT
    return None


def determine_hope_category(text: str, query_type: QueryType) -> HopeCategory:
    lowered = text.lower()
    if "quote" in lowered or "saying" in lowered:
        return HopeCategory.QUOTE
    if "story" in lowered or "example" in lowered:
        return HopeCategory.STORY
    if "affirmation" in lowered or "mantra" in lowered:
        return HopeCategory.AFFIRMATION
    if query_type == QueryType.EMOTIONAL_SUPPORT:
        return HopeCategory.SUPPORT
    return HopeCategory.INSPIRATION


def get_contextual_snippet(user_id: str, category: str | None = None) -> HopeSnippet | None:
    """
    Pick a snippet for user_id.

    The user's own snippets win when one matches (any own snippet if no
    category is given). Otherwise a random shared snippet in the category.
    """
    own = HopeSnippetRepository.list_visible(user_id, category=category, scope="own")
    if own:
        return random.choice(own)
    return HopeSnippetRepository.random(user_id, category=category, scope="shared")


def format_hope_context(
    profile: UserProfile | None,
    journal_logs: Sequence[JournalLog],
    effective_snippets: Sequence[HopeSnippet],
    query_type: QueryType,
) -> str:
    """Plain-text patient context block for hope prompts."""
    lines: list[str] = []

    if profile:
        lines.append("User Information:")
        lines.append(f"- Name: {profile.display_name or profile.username}")
        if profile.diagnosis:
            lines.append(f"- Diagnosis: {profile.diagnosis}")
        if profile.diagnosis_stage:
            lines.append(f"- Stage: {profile.diagnosis_stage}")
        if profile.diagnosis_date:
            lines.append(f"- Diagnosis Date: {profile.diagnosis_date.isoformat()}")

    if query_type == QueryType.EMOTIONAL_SUPPORT and journal_logs:
        newest = sorted(journal_logs, key=lambda log: log.entry_date, reverse=True)[:3]
        lines.append("")
        lines.append("RECENT JOURNAL ENTRIES:")
        for index, log in enumerate(newest, start=1):
            lines.append(f"Entry {index} ({log.entry_date.isoformat()}):")
            lines.append(sanitize_for_prompt(log.content, max_length=500))
            if log.mood:
                lines.append(f"Mood: {log.mood}")
            if log.pain_level:
                lines.append(f"Pain Level: {log.pain_level}/10")
            if log.symptoms:
                lines.append(f"Symptoms: {', '.join(log.symptoms)}")

    if effective_snippets:
        lines.append("")
        lines.append("PREVIOUSLY EFFECTIVE HOPE MESSAGES:")
        for index, snippet in enumerate(effective_snippets, start=1):
            entry = f"{index}. {snippet.content}"
            if snippet.author:
                entry += f" - {snippet.author}"
            lines.append(entry)

    return "\n".join(lines) + ("\n" if lines else "")


def _generate_with_llm(user_id: str, query: str, query_type: QueryType) -> str | None:
    providers = available_providers()
    if not providers:
        return None

    context = format_hope_context(
        UserRepository.get(user_id),
        JournalLogRepository.recent(user_id, limit=3),
        [],
        query_type,
    )
    prompt = (
        f"{context}\n"
        f"The person asked: \"{sanitize_for_prompt(query, max_length=500)}\"\n"
        "Write a short message of hope in response."
    )
    text = call_llm(
        prompt,
        provider=providers[0],
        counter_prefix="hope",
        system_instruction=HOPE_SYSTEM_INSTRUCTION,
    ).strip()
    return text or None


def generate_hope_message(user_id: str, query: str, query_type: QueryType) -> HopeResponse:
    try:
        category = determine_hope_category(query, query_type)
        snippet = get_contextual_snippet(user_id, category.value)
        if snippet:
            counter("hope.snippet_served")
            return HopeResponse(
                content=snippet.content,
                source_snippet=snippet,
                is_custom_generated=False,
            )

        generated = _generate_with_llm(user_id, query, query_type)
        if generated:
            counter("hope.llm_generated")
            return HopeResponse(content=generated, is_custom_generated=True)

        counter("hope.default_message")
        return HopeResponse(content=DEFAULT_SUPPORT_MESSAGE, is_custom_generated=True)
    except Exception as e:
        logger.error("Hope message generation failed: %s", e)
        counter("hope.error")
        return HopeResponse(content=ERROR_SUPPORT_MESSAGE, is_custom_generated=True)
