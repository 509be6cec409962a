"""LLM access layer: provider clients, retrying call_llm and JSON extraction."""

from sophera.llm.json_extraction import extract_json
from sophera.llm.providers import LLMUnavailableError, Provider, available_providers
from sophera.llm.retry import call_llm

__all__ = [
    "LLMUnavailableError",
    "Provider",
    "available_providers",
    "call_llm",
    "extract_json",
]
