"""Tests for per-user and global daily LLM budgets."""

from __future__ import annotations

import pytest

from sophera.infrastructure.llm_budget import (
    BudgetExceededError,
    check_budget,
    ensure_budget,
    get_daily_usage_report,
    record_llm_call,
)


def test_fresh_budget_allows_calls(db):
    status = check_budget("user-1")

    assert status.is_allowed
    assert status.user_calls_today == 0
    assert status.reason is None


def test_records_count_per_user_and_type(db):
    record_llm_call("user-1", "chat")
    record_llm_call("user-1", "chat")
    record_llm_call("user-1", "timeline")
    record_llm_call("user-2", "chat")

    assert check_budget("user-1").user_calls_today == 3
    assert check_budget("user-1").global_calls_today == 4

    report = get_daily_usage_report()
    assert report["total_calls"] == 4
    assert report["unique_users"] == 2
    assert report["by_type"] == {"chat": 3, "timeline": 1}


def test_user_limit(db):
    record_llm_call("user-1")
    record_llm_call("user-1")

    status = check_budget("user-1", user_limit=2)

    assert not status.is_allowed
    assert status.reason == "User daily limit exceeded (2/2)"
    assert check_budget("user-2", user_limit=2).is_allowed


def test_global_limit(db):
    record_llm_call("user-1")
    record_llm_call("user-2")

    status = check_budget("user-3", global_limit=2)

    assert not status.is_allowed
    assert status.reason.startswith("Global daily limit exceeded")


def test_ensure_budget_raises_when_exhausted(db, monkeypatch):
    from sophera.infrastructure import llm_budget

    monkeypatch.setattr(
        llm_budget, "check_budget", lambda user_id: check_budget(user_id, user_limit=1)
    )
    ensure_budget("user-1")
    record_llm_call("user-1")

    with pytest.raises(BudgetExceededError) as exc_info:
        ensure_budget("user-1")
    assert exc_info.value.status.user_calls_today == 1
