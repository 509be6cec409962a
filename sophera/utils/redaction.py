"""
Redaction helpers used before anything health-related reaches logs or prompts.

Provides:
- redact(): stable hash of an identifier for log correlation
- redact_pii(): mask contact details in free text
- sanitize_for_prompt(): strip prompt-injection patterns from user text
"""

from __future__ import annotations

import re
from hashlib import sha256

# Patterns that could be used for prompt injection
INJECTION_PATTERNS = [
    r"ignore\s+(previous|above|all)\s+instructions?",
    r"disregard\s+(previous|above|all)\s+instructions?",
    r"forget\s+(previous|above|all)\s+instructions?",
    r"new\s+instructions?:",
    r"system\s*:",
    r"assistant\s*:",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
]
INJECTION_REGEX = re.compile("|".join(INJECTION_PATTERNS), re.IGNORECASE)


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_pii(text: str | None, max_length: int = 500) -> str:
    """
    Mask contact details in free text (emails, phone numbers, SSNs, street addresses).

    Medical content is left alone; callers decide whether the text may be logged at all.
    """
    if not text:
        return ""

    text = re.sub(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", "[EMAIL]", text)
    text = re.sub(r"\b\d{3}[-\s]\d{2}[-\s]\d{4}\b", "[SSN]", text)
    text = re.sub(r"\+?1?[-.\s]?\(?\b[0-9]{3}\)?[-.\s][0-9]{3}[-.\s][0-9]{4}\b", "[PHONE]", text)
    text = re.sub(
        r"\b\d{1,5}\s+[A-Za-z]+\s+(Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Lane|Ln|Way|Blvd|Court|Ct)\b",
        "[ADDRESS]",
        text,
        flags=re.IGNORECASE,
    )
    return text[:max_length]


def sanitize_for_prompt(text: str | None, max_length: int = 2000) -> str:
    """
    Sanitize user-provided text before including it in an LLM prompt.

    Truncates, replaces known injection phrases with [REDACTED] and drops
    characters used as prompt delimiters.
    """
    if not text:
        return ""

    text = text[:max_length]
    text = INJECTION_REGEX.sub("[REDACTED]", text)
    text = re.sub(r"[<>{}|\\]", "", text)

    return text.strip()
