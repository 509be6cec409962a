"""Conversions between model fields and SQLite column values."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from typing import Any


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def parse_dt(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def dumps(value: Any) -> str:
    """JSON-encode a list/dict column (pydantic models are dumped first)."""
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    elif isinstance(value, list):
        value = [v.model_dump(mode="json") if hasattr(v, "model_dump") else v for v in value]
    return json.dumps(value)


def loads(value: str | None, default: Any) -> Any:
    if not value:
        return default
    return json.loads(value)


def column_value(value: Any) -> Any:
    """Convert a single model value to what SQLite stores for it."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    if isinstance(value, (list, dict)) or hasattr(value, "model_dump"):
        return dumps(value)
    return value


def update_columns(changes: dict[str, Any], required: tuple[str, ...] = ()) -> dict[str, Any]:
    """
    Column values for a partial UPDATE.

    Explicit nulls clear optional columns; a null for a column in required
    (NOT NULL in the schema) is ignored instead of failing the write.
    """
    return {
        key: column_value(value)
        for key, value in changes.items()
        if not (value is None and key in required)
    }
