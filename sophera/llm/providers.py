"""Provider clients behind call_llm.

Each ``complete_*`` function sends one prompt to one vendor and converts the
vendor's transient failures into builtin exceptions that call_llm retries:

    timeout              -> TimeoutError
    unavailable / 5xx    -> ConnectionError
    rate limited (429)   -> OSError

Anything else propagates unchanged and is not retried.
"""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache

from sophera.config import LLM_TIMEOUT_SECONDS
from sophera.infrastructure.settings import (
    ANTHROPIC_MAX_TOKENS,
    ANTHROPIC_MODEL,
    GEMINI_MAX_TOKENS,
    GEMINI_TEMPERATURE,
    OPENAI_MODEL,
)
from sophera.llm.gemini import get_gemini_model_with_options
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter

logger = get_logger(__name__)


class Provider(str, Enum):
    """LLM vendors Sophera can route to. Values match the chat model names."""

    CLAUDE = "claude"
    GPT = "gpt"
    GEMINI = "gemini"


# Order used when the preferred provider has no credentials
PROVIDER_PREFERENCE = (Provider.CLAUDE, Provider.GPT, Provider.GEMINI)


class LLMUnavailableError(RuntimeError):
    """Raised when a provider has no credentials or SDK."""


def is_configured(provider: Provider) -> bool:
    """Whether credentials for provider are present (no network call)."""
    if provider is Provider.CLAUDE:
        return bool(os.getenv("ANTHROPIC_API_KEY"))
    if provider is Provider.GPT:
        return bool(os.getenv("OPENAI_API_KEY"))
    return bool(os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_CLOUD_PROJECT"))


def available_providers() -> list[Provider]:
    """Configured providers in fallback preference order."""
    return [p for p in PROVIDER_PREFERENCE if is_configured(p)]


@lru_cache(maxsize=1)
def get_openai_client():
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise LLMUnavailableError("OPENAI_API_KEY is not configured")

    from openai import OpenAI

    # call_llm owns retries
    return OpenAI(api_key=api_key, timeout=LLM_TIMEOUT_SECONDS, max_retries=0)


@lru_cache(maxsize=1)
def get_anthropic_client():
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise LLMUnavailableError("ANTHROPIC_API_KEY is not configured")

    from anthropic import Anthropic

    return Anthropic(api_key=api_key, timeout=LLM_TIMEOUT_SECONDS, max_retries=0)


def complete_gemini(
    prompt: str,
    counter_prefix: str,
    system_instruction: str | None = None,
    json_output: bool = False,
) -> str:
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    model = get_gemini_model_with_options(system_instruction=system_instruction)

    generation_config: dict[str, object] = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
    }
    if json_output:
        generation_config["response_mime_type"] = "application/json"

    try:
        response = model.generate_content(prompt, generation_config=generation_config)
        return response.text
    except DeadlineExceeded as e:
        counter(f"{counter_prefix}.gemini.timeout")
        logger.warning("Gemini call timed out after %ds", LLM_TIMEOUT_SECONDS)
        raise TimeoutError(f"Gemini call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"{counter_prefix}.gemini.service_unavailable")
        logger.warning("Gemini unavailable, will retry: %s", e)
        raise ConnectionError(f"Gemini unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"{counter_prefix}.gemini.rate_limited")
        logger.warning("Gemini rate limited (429), will retry: %s", e)
        raise OSError(f"Gemini rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"{counter_prefix}.gemini.internal_error")
        logger.warning("Gemini internal error (500), will retry: %s", e)
        raise ConnectionError(f"Gemini internal error: {e}") from e


def complete_openai(
    prompt: str,
    counter_prefix: str,
    system_instruction: str | None = None,
    json_output: bool = False,
) -> str:
    import openai

    client = get_openai_client()

    messages = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})
    messages.append({"role": "user", "content": prompt})

    kwargs: dict[str, object] = {}
    if json_output:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=messages,
            **kwargs,
        )
        return response.choices[0].message.content or ""
    except openai.APITimeoutError as e:
        counter(f"{counter_prefix}.gpt.timeout")
        logger.warning("OpenAI call timed out after %ds", LLM_TIMEOUT_SECONDS)
        raise TimeoutError(f"OpenAI call timed out: {e}") from e
    except openai.APIConnectionError as e:
        counter(f"{counter_prefix}.gpt.service_unavailable")
        logger.warning("OpenAI unreachable, will retry: %s", e)
        raise ConnectionError(f"OpenAI unreachable: {e}") from e
    except openai.RateLimitError as e:
        counter(f"{counter_prefix}.gpt.rate_limited")
        logger.warning("OpenAI rate limited (429), will retry: %s", e)
        raise OSError(f"OpenAI rate limited: {e}") from e
    except openai.InternalServerError as e:
        counter(f"{counter_prefix}.gpt.internal_error")
        logger.warning("OpenAI internal error, will retry: %s", e)
        raise ConnectionError(f"OpenAI internal error: {e}") from e


def complete_anthropic(
    prompt: str,
    counter_prefix: str,
    system_instruction: str | None = None,
    json_output: bool = False,
) -> str:
    import anthropic

    client = get_anthropic_client()

    kwargs: dict[str, object] = {}
    if system_instruction:
        kwargs["system"] = system_instruction
    if json_output:
        # No native JSON mode; extract_json copes with any stray prose
        prompt = f"{prompt}\n\nRespond with JSON only, no prose."

    try:
        response = client.messages.create(
            model=ANTHROPIC_MODEL,
            max_tokens=ANTHROPIC_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
    except anthropic.APITimeoutError as e:
        counter(f"{counter_prefix}.claude.timeout")
        logger.warning("Anthropic call timed out after %ds", LLM_TIMEOUT_SECONDS)
        raise TimeoutError(f"Anthropic call timed out: {e}") from e
    except anthropic.APIConnectionError as e:
        counter(f"{counter_prefix}.claude.service_unavailable")
        logger.warning("Anthropic unreachable, will retry: %s", e)
        raise ConnectionError(f"Anthropic unreachable: {e}") from e
    except anthropic.RateLimitError as e:
        counter(f"{counter_prefix}.claude.rate_limited")
        logger.warning("Anthropic rate limited (429), will retry: %s", e)
        raise OSError(f"Anthropic rate limited: {e}") from e
    except anthropic.InternalServerError as e:
        counter(f"{counter_prefix}.claude.internal_error")
        logger.warning("Anthropic internal error, will retry: %s", e)
        raise ConnectionError(f"Anthropic internal error: {e}") from e


COMPLETERS = {
    Provider.GEMINI: complete_gemini,
    Provider.GPT: complete_openai,
    Provider.CLAUDE: complete_anthropic,
}
