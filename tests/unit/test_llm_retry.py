"""Tests for call_llm retry behavior (provider functions patched)."""

from __future__ import annotations

import pytest
from tenacity import wait_none

from sophera.llm import LLMUnavailableError, Provider, call_llm
from sophera.llm import providers


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(call_llm.retry, "wait", wait_none())


def patch_completer(monkeypatch, provider, func):
    monkeypatch.setitem(providers.COMPLETERS, provider, func)


def test_unconfigured_provider_not_called(monkeypatch):
    calls = []
    patch_completer(monkeypatch, Provider.CLAUDE, lambda *a, **k: calls.append(1))

    with pytest.raises(LLMUnavailableError):
        call_llm("hi", provider=Provider.CLAUDE)
    assert calls == []


def test_returns_completion(monkeypatch, with_provider):
    with_provider("ANTHROPIC_API_KEY")
    seen = {}

    def complete(prompt, counter_prefix, system_instruction=None, json_output=False):
        seen.update(prompt=prompt, prefix=counter_prefix, json_output=json_output)
        return "hello"

    patch_completer(monkeypatch, Provider.CLAUDE, complete)

    assert call_llm("hi", provider="claude", counter_prefix="chat", json_output=True) == "hello"
    assert seen == {"prompt": "hi", "prefix": "chat", "json_output": True}


def test_transient_errors_retried(monkeypatch, with_provider):
    with_provider("OPENAI_API_KEY")
    attempts = []

    def flaky(*args, **kwargs):
        attempts.append(1)
        if len(attempts) < 2:
            raise ConnectionError("unavailable")
        return "recovered"

    patch_completer(monkeypatch, Provider.GPT, flaky)

    assert call_llm("hi", provider=Provider.GPT) == "recovered"
    assert len(attempts) == 2


def test_gives_up_after_max_attempts(monkeypatch, with_provider):
    with_provider("OPENAI_API_KEY")
    attempts = []

    def always_times_out(*args, **kwargs):
        attempts.append(1)
        raise TimeoutError("slow")

    patch_completer(monkeypatch, Provider.GPT, always_times_out)

    with pytest.raises(TimeoutError):
        call_llm("hi", provider=Provider.GPT)
    assert len(attempts) == 3


def test_other_errors_not_retried(monkeypatch, with_provider):
    with_provider("GOOGLE_API_KEY")
    attempts = []

    def bad_request(*args, **kwargs):
        attempts.append(1)
        raise ValueError("invalid prompt")

    patch_completer(monkeypatch, Provider.GEMINI, bad_request)

    with pytest.raises(ValueError):
        call_llm("hi", provider=Provider.GEMINI)
    assert len(attempts) == 1
