"""General utility helpers shared across modules."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def parse_iso_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into a datetime.

    Returns ``None`` for empty or unparseable input. ``datetime`` and ``date``
    instances are passed through (dates become midnight datetimes).
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as produced by JavaScript clients
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def to_json_value(value: Any) -> Any:
    """Convert dates, tuples and sets into JSON-friendly representations."""

    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if isinstance(value, set):
        return sorted(to_json_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_json_value(val) for key, val in value.items()}
    return value


def as_date(value: date | datetime) -> date:
    """Return the calendar date of ``value``."""

    if isinstance(value, datetime):
        return value.date()
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
