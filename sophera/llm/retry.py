"""Shared LLM call with retry logic.

Every feature (chat, timeline, document Q&A, action steps) calls the model
through call_llm. Transient failures are converted to TimeoutError /
ConnectionError / OSError by the provider functions and retried here with
exponential backoff. Callers wrap call_llm in their own try/except to apply
their fallback policy.
"""

from __future__ import annotations

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sophera.config import LLM_MAX_RETRIES
from sophera.llm.providers import COMPLETERS, LLMUnavailableError, Provider, is_configured
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter, time_block

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
    reraise=True,
)
def call_llm(
    prompt: str,
    provider: Provider = Provider.GEMINI,
    counter_prefix: str = "llm",
    system_instruction: str | None = None,
    json_output: bool = False,
) -> str:
    """Call one provider with retry on transient errors.

    Args:
        prompt: The prompt to send to the model.
        provider: Which vendor to call.
        counter_prefix: Telemetry counter prefix (e.g. "timeline", "chat").
        system_instruction: Optional system prompt.
        json_output: Ask the provider for a JSON-only response where supported.

    Returns:
        The model's response text.

    Raises:
        LLMUnavailableError: Provider has no credentials (not retried).
        TimeoutError / ConnectionError / OSError: Transient failure after all retries.
        Exception: Any other vendor error (not retried, caller handles).
    """
    provider = Provider(provider)
    if not is_configured(provider):
        raise LLMUnavailableError(f"LLM provider '{provider.value}' is not configured")

    counter(f"{counter_prefix}.{provider.value}.calls")
    try:
        with time_block(f"llm.{provider.value}.latency"):
            return COMPLETERS[provider](
                prompt,
                counter_prefix,
                system_instruction=system_instruction,
                json_output=json_output,
            )
    except (TimeoutError, ConnectionError, OSError):
        raise
    except Exception as e:
        counter(f"{counter_prefix}.{provider.value}.error")
        logger.error("LLM call to %s failed: %s", provider.value, e)
        raise
