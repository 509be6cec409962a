"""
Input validation utilities shared by the record models.
"""

from __future__ import annotations

import re
from datetime import date, datetime

MAX_TAGS = 20
MAX_TAG_LENGTH = 50
MAX_LIST_ITEM_LENGTH = 200

TAG_PATTERN = re.compile(r"^[\w\s\-./+&']+$", re.UNICODE)


class ValidationError(ValueError):
    """Raised when input validation fails."""


def parse_iso_date(value: str | date | datetime | None) -> date | None:
    """
    Parse YYYY-MM-DD (or a full ISO timestamp) into a date.

    Raises:
        ValidationError: If the value is not an ISO date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")

    value = value.strip()
    if not value:
        return None

    try:
        if len(value) > 10:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def validate_date_range(
    start: date | None,
    end: date | None,
    start_field: str = "start_date",
    end_field: str = "end_date",
) -> None:
    """Raise ValidationError when both dates are set and end precedes start."""
    if start and end and end < start:
        raise ValidationError(f"{end_field} must not be before {start_field}")


def validate_tags(tags: list[str] | None) -> list[str]:
    """
    Normalize a tag list: strip, lowercase, drop blanks and duplicates (order kept).

    Raises:
        ValidationError: On too many tags, overlong tags or disallowed characters
    """
    if not tags:
        return []

    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if not tag or tag in cleaned:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(f"Tag exceeds maximum length of {MAX_TAG_LENGTH}")
        if not TAG_PATTERN.match(tag):
            raise ValidationError("Tags may only contain letters, numbers, spaces and - . / + & '")
        cleaned.append(tag)

    if len(cleaned) > MAX_TAGS:
        raise ValidationError(f"At most {MAX_TAGS} tags allowed")
    return cleaned


def clean_string_list(values: list[str] | None, field: str = "items") -> list[str]:
    """Strip entries, drop blanks and reject overlong entries."""
    if not values:
        return []
    cleaned = [v.strip() for v in values if v and v.strip()]
    for value in cleaned:
        if len(value) > MAX_LIST_ITEM_LENGTH:
            raise ValidationError(f"Entry in {field} exceeds {MAX_LIST_ITEM_LENGTH} characters")
    return cleaned


def require_text(value: str | None, field: str) -> str:
    """Return value stripped, raising ValidationError if it is empty."""
    if value is None or not value.strip():
        raise ValidationError(f"{field} cannot be empty")
    return value.strip()
