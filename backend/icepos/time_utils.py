from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_today(utc_offset_hours: float = 0) -> date:
    return (utcnow() + timedelta(hours=utc_offset_hours)).date()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is the start of that day (UTC)
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    if value is None or not value.strip():
        return None
    return date.fromisoformat(value.strip()[:10])


def day_bounds(day: date, utc_offset_hours: float = 0) -> tuple[datetime, datetime]:
    """
    [start, end) of a calendar day as UTC-naive datetimes.

    With an offset the day is the local day of that zone (UTC+7: 17:00 UTC
    the evening before until 17:00 UTC).
    """
    start = datetime.combine(day, time.min) - timedelta(hours=utc_offset_hours)
    return start, start + timedelta(days=1)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
