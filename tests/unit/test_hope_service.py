"""
Tests for hope and emotional-support answers.

Covers:
- Trigger phrase detection and category choice
- Own snippets preferred over shared ones
- Context block formatting
- Fallback order: snippet, LLM message, fixed message
"""

from __future__ import annotations

from datetime import date

import pytest

from sophera.assistant.types import QueryType
from sophera.hope import service
from sophera.hope.models import HopeCategory, HopeSnippet, HopeSnippetCreate
from sophera.hope.repository import HopeSnippetRepository
from sophera.hope.service import (
    DEFAULT_SUPPORT_MESSAGE,
    ERROR_SUPPORT_MESSAGE,
    analyze_hope_query,
    determine_hope_category,
    format_hope_context,
    generate_hope_message,
    get_contextual_snippet,
)
from sophera.journal.models import JournalLog
from sophera.llm import Provider
from sophera.users.models import UserProfile

USER_ID = "user-test-1"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Can you inspire me today?", QueryType.HOPE),
        ("Share a success story please", QueryType.HOPE),
        ("I've been feeling overwhelmed", QueryType.EMOTIONAL_SUPPORT),
        ("I need support tonight", QueryType.EMOTIONAL_SUPPORT),
        ("What is a CT scan?", None),
    ],
)
def test_analyze_hope_query(text, expected):
    assert analyze_hope_query(text) == expected


@pytest.mark.parametrize(
    "text,query_type,expected",
    [
        ("Give me a hope quote", QueryType.HOPE, HopeCategory.QUOTE),
        ("Share a success story", QueryType.HOPE, HopeCategory.STORY),
        ("I want an affirmation", QueryType.HOPE, HopeCategory.AFFIRMATION),
        ("I'm feeling down", QueryType.EMOTIONAL_SUPPORT, HopeCategory.SUPPORT),
        ("Give me hope", QueryType.HOPE, HopeCategory.INSPIRATION),
    ],
)
def test_determine_hope_category(text, query_type, expected):
    assert determine_hope_category(text, query_type) == expected


def test_format_hope_context_for_emotional_support():
    profile = UserProfile(
        id=USER_ID,
        username="pat",
        display_name="Pat",
        diagnosis="Esophageal adenocarcinoma",
        diagnosis_stage="III",
    )
    logs = [
        JournalLog(
            id=f"log-{day}",
            user_id=USER_ID,
            entry_date=date(2024, 3, day),
            content=f"Entry for day {day}",
            mood="tired" if day == 4 else None,
            pain_level=3 if day == 4 else None,
        )
        for day in range(1, 5)
    ]
    snippet = HopeSnippet(
        id="s-1", title="t", content="Keep going", category="quote", author="A friend"
    )

    context = format_hope_context(profile, logs, [snippet], QueryType.EMOTIONAL_SUPPORT)

    assert context.startswith("User Information:\n- Name: Pat\n- Diagnosis: Esophageal")
    assert "- Stage: III" in context
    # Three newest entries, newest first
    assert "Entry 1 (2024-03-04):" in context
    assert "Entry 3 (2024-03-02):" in context
    assert "2024-03-01" not in context
    assert "Mood: tired" in context
    assert "Pain Level: 3/10" in context
    assert "1. Keep going - A friend" in context


def test_format_hope_context_skips_journal_for_hope_queries():
    log = JournalLog(id="l", user_id=USER_ID, entry_date=date(2024, 3, 1), content="Rough day")

    context = format_hope_context(None, [log], [], QueryType.HOPE)

    assert context == ""


# ============================================================================
# Snippet selection and message generation
# ============================================================================


class TestHopeMessages:
    def test_own_snippet_preferred(self, db):
        own = HopeSnippetRepository.create(
            USER_ID,
            HopeSnippetCreate(title="Mine", content="My own words", category="quote"),
        )

        assert get_contextual_snippet(USER_ID, "quote").id == own.id
        assert get_contextual_snippet("someone-else", "quote").id == "seed-hope-quote-1"

    def test_snippet_served_without_llm(self, db):
        response = generate_hope_message(USER_ID, "Share a success story", QueryType.HOPE)

        assert response.is_custom_generated is False
        assert response.source_snippet.id == "seed-hope-story-1"

    def test_llm_message_when_no_snippet(self, db, monkeypatch):
        prompts = []

        def fake_call_llm(prompt, provider, counter_prefix, **kwargs):
            prompts.append(prompt)
            return "  You are stronger than you know.  "

        monkeypatch.setattr(service, "get_contextual_snippet", lambda user_id, category: None)
        monkeypatch.setattr(service, "available_providers", lambda: [Provider.CLAUDE])
        monkeypatch.setattr(service, "call_llm", fake_call_llm)

        response = generate_hope_message(USER_ID, "Give me hope", QueryType.HOPE)

        assert response.content == "You are stronger than you know."
        assert response.is_custom_generated is True
        assert 'The person asked: "Give me hope"' in prompts[0]

    def test_default_message_without_snippet_or_provider(self, db, monkeypatch):
        monkeypatch.setattr(service, "get_contextual_snippet", lambda user_id, category: None)

        response = generate_hope_message(USER_ID, "Give me hope", QueryType.HOPE)

        assert response.content == DEFAULT_SUPPORT_MESSAGE
        assert response.is_custom_generated is True

    def test_errors_become_fixed_message(self, db, monkeypatch):
        def broken(user_id, category):
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(service, "get_contextual_snippet", broken)

        response = generate_hope_message(USER_ID, "Give me hope", QueryType.HOPE)

        assert response.content == ERROR_SUPPORT_MESSAGE
