"""
Recover JSON from LLM output.

Models wrap JSON in markdown fences, add a sentence before or after it, or
drop commas between fields. extract_json strips the wrapping and attempts
two repairs before giving up.
"""

from __future__ import annotations

import json
import re
from typing import Any

from sophera.observability.logging import get_logger

logger = get_logger(__name__)


def _repair_missing_commas(text: str) -> str:
    text = re.sub(r'"\s*\n\s*"', '",\n"', text)
    text = re.sub(r"(\d+\.?\d*|true|false|null)\s*\n\s*\"", r'\1,\n"', text)
    text = re.sub(r"\}\s*\n\s*([\"{])", r"},\n\1", text)
    text = re.sub(r'\]\s*\n\s*"', '],\n"', text)
    return text


def _remove_trailing_commas(text: str) -> str:
    return re.sub(r",\s*([\}\]])", r"\1", text)


def _outermost_span(text: str) -> str | None:
    """Slice from the first { or [ to the matching last } or ]."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start : end + 1]


def extract_json(text: str) -> Any:
    """Parse a JSON object or array out of model output.

    Raises:
        ValueError: If nothing parseable can be recovered
    """
    if not text or not text.strip():
        raise ValueError("Empty LLM response")

    text = re.sub(r"```json\s*", "", text)
    text = re.sub(r"```\s*", "", text)
    text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("JSON parse error (attempting repair): %s", e)

    candidate = _outermost_span(text)
    if candidate is None:
        raise ValueError("No JSON object or array found in LLM response")

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    repaired = _repair_missing_commas(candidate)
    try:
        result = json.loads(repaired)
        logger.info("JSON repair succeeded (missing commas fixed)")
        return result
    except json.JSONDecodeError:
        pass

    repaired = _remove_trailing_commas(repaired)
    try:
        result = json.loads(repaired)
        logger.info("JSON repair succeeded (trailing commas removed)")
        return result
    except json.JSONDecodeError as e:
        logger.warning("JSON repair failed: %s", e)
        raise ValueError(f"Could not parse JSON from LLM response: {e.msg}") from e
