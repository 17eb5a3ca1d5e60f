"""Timezone helpers.

All timestamps inside the pipeline are timezone-aware UTC. SQLite returns
naive datetimes for timezone columns, so values read back are re-tagged.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Tag naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO-8601 date or datetime string (``Z`` suffix allowed)."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if len(text) == 10:
        return start_of_day(date.fromisoformat(text))
    return as_utc(datetime.fromisoformat(text))
