# Overview: UTC time helpers; all stored datetimes are naive UTC.

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    ISO-8601 string to naive UTC.

    Blank input gives None. A bare date is midnight of that day. Offsets
    (including a trailing "Z") are converted to UTC before the tzinfo is
    dropped; a string without an offset is taken to be UTC already.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def day_range(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Half-open [start, end) window for list filters.

    An end given as a bare date (YYYY-MM-DD) covers that whole day.
    """
    lower = parse_iso_datetime(start) if start else None
    upper = None
    if end:
        upper = parse_iso_datetime(end)
        if upper is not None and len(end.strip()) == 10:
            upper = datetime.combine(upper.date(), time.min) + timedelta(days=1)
    return lower, upper


def to_utc_z(value: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with a trailing "Z" (seconds precision). Dates pass through as YYYY-MM-DD."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        return value.isoformat()
    aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"
