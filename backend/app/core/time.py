"""Time utilities.

Session dates and times are stored as local wall-clock strings
(``YYYY-MM-DD`` and ``HH:MM``). Combining them into a datetime is only done
for ordering and comparison, never for storage.
"""

import re
from datetime import UTC, date, datetime, time
from typing import Optional

from backend.app.core.errors import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2})(?::(\d{2}))?$")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime for defaults and onupdate hooks."""
    return datetime.now(UTC)


def local_now() -> datetime:
    """Naive local wall-clock time, the reference for "today" and reminders."""
    return datetime.now()


def to_storage_date(value: date) -> str:
    # Built from the value's own components; a datetime is never shifted to UTC first.
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def to_storage_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_date(text: str, field: str = "date") -> date:
    if not isinstance(text, str) or not _DATE_RE.match(text):
        raise ValidationError(f"Invalid date {text!r}, expected YYYY-MM-DD", field=field)
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {text!r}", field=field) from exc


def parse_time(text: str, field: str = "time") -> time:
    """Parse ``HH:MM`` (a trailing ``:SS`` is tolerated and dropped)."""
    match = _TIME_RE.match(text) if isinstance(text, str) else None
    if not match:
        raise ValidationError(f"Invalid time {text!r}, expected HH:MM", field=field)
    hour, minute, second = int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ValidationError(f"Invalid time {text!r}", field=field)
    return time(hour, minute)


def normalize_date(text: str, field: str = "date") -> str:
    return to_storage_date(parse_date(text, field=field))


def normalize_time(text: str, field: str = "time") -> str:
    return to_storage_time(parse_time(text, field=field))


def combine(date_str: str, time_str: str) -> datetime:
    """Ordering key for a stored session: ``{date}T{time}`` as a naive local timestamp."""
    return datetime.combine(parse_date(date_str), parse_time(time_str))


def today_storage_date(now: Optional[datetime] = None) -> str:
    return to_storage_date(now or local_now())


def is_today(date_str: str, now: Optional[datetime] = None) -> bool:
    return normalize_date(date_str) == today_storage_date(now)


def storage_date(value, field: str = "date") -> str:
    """Canonical date string from a ``date``/``datetime`` or a date string."""
    if isinstance(value, date):
        return to_storage_date(value)
    return normalize_date(value, field=field)


def storage_time(value, field: str = "time") -> str:
    """Canonical time string from a ``time``/``datetime`` or a time string."""
    if isinstance(value, (time, datetime)):
        return to_storage_time(value)
    return normalize_time(value, field=field)
