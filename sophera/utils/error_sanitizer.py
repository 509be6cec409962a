"""
Error message sanitization for API responses.

Health records end up in exception text (SQL parameters, document excerpts,
LLM payloads), so anything that reaches a client goes through here first.
"""

from __future__ import annotations

import re

from sophera.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak internals or data
SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack trace indicators
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    r"line \d+",
    # Database errors
    r"sqlite3?\.",
    r"UNIQUE constraint",
    r"FOREIGN KEY constraint",
    r"no such table",
    r"no such column",
    # Credentials
    r"[A-Za-z0-9_-]{32,}",
    r"Bearer [A-Za-z0-9._-]+",
    r"sk-[A-Za-z0-9]+",
    # Internal module names
    r"sophera\.[a-z_.]+",
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    403: "Access denied.",
    404: "Resource not found.",
    413: "Upload too large.",
    422: "Invalid data format.",
    429: "Too many requests. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    502: "The AI service returned an unusable response. Please try again.",
    503: "Service temporarily unavailable.",
}


def sanitize_error_message(
    message: str,
    status_code: int = 500,
    allow_field_names: bool = True,
) -> str:
    """
    Sanitize an error message to prevent information leakage.

    Short, plain 400 messages (e.g. "end_date must not be before start_date")
    pass through. Everything else collapses to the generic text for the status.
    """
    if not message:
        return GENERIC_MESSAGES.get(status_code, "An error occurred.")

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return GENERIC_MESSAGES.get(status_code, "An error occurred.")

    if (
        status_code == 400
        and allow_field_names
        and len(message) < 120
        and not any(c in message for c in ["{", "}", "[", "]", "\n"])
    ):
        return message

    return GENERIC_MESSAGES.get(status_code, "An error occurred.")


def get_safe_error_detail(
    error: Exception,
    status_code: int = 500,
    context: str | None = None,
) -> str:
    """
    Log the full error and return client-safe detail text.

    For 5xx errors the context string (e.g. "Failed to generate timeline")
    is returned as-is when given.
    """
    logger.error("Error (status=%d): %s - %s", status_code, type(error).__name__, str(error))

    if context and status_code >= 500:
        return context

    return sanitize_error_message(str(error), status_code)
