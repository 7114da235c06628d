"""Date-only wire format helpers (strict ``YYYY-MM-DD``)."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone

_DATE_ONLY = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_date_only(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string into a :class:`date`.

    Raises:
        ValueError: when the string does not match the format or names an
            impossible calendar day (``2023-02-30``).
    """

    if not isinstance(value, str) or not _DATE_ONLY.fullmatch(value):
        raise ValueError(f"Invalid date format: expected 'YYYY-MM-DD', got {value!r}")

    year, month, day = (int(part) for part in value.split("-"))
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        raise ValueError(f"Invalid date components in {value!r}")
    try:
        parsed = date(year, month, day)
    except ValueError as exc:
        raise ValueError(f"Invalid calendar date {value!r}") from exc

    if (parsed.year, parsed.month, parsed.day) != (year, month, day):  # pragma: no cover
        raise ValueError(f"Invalid calendar date {value!r}")
    return parsed


def format_date_only(value: date) -> str:
    """Format a date (or the date part of a datetime) as ``YYYY-MM-DD``."""

    if isinstance(value, datetime):
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_timestamp(value: str) -> datetime:
    """Parse either a date-only string (midnight UTC) or an ISO 8601 datetime."""

    raw = value.strip()
    if len(raw) == 10:
        return datetime.combine(parse_date_only(raw), time.min, tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Enter a valid date (YYYY-MM-DD) or ISO timestamp, got {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_time_of_day(value: str) -> str:
    """Validate an ``HH:MM`` 24-hour clock string."""

    if not _TIME_OF_DAY.fullmatch(value):
        raise ValueError(f"Invalid time: expected 'HH:MM', got {value!r}")
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


__all__ = [
    "as_utc",
    "format_date_only",
    "parse_date_only",
    "parse_timestamp",
    "utcnow",
    "validate_time_of_day",
]
