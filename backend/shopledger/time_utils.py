from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from .errors import ValidationError

PERIODS = ("today", "last7days", "last30days", "all")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s[:10])


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


def period_bounds(period: str, *, now: Optional[datetime] = None) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Resolve a named reporting period to a half-open [start, end) UTC range.

    Supported: "today", "last7days", "last30days", "all". Unknown names
    raise ValidationError.
    """
    now = now or utcnow()
    start_of_today = datetime.combine(now.date(), time.min)
    if period == "all":
        return None, None
    if period == "today":
        return start_of_today, start_of_today + timedelta(days=1)
    if period == "last7days":
        return start_of_today - timedelta(days=6), start_of_today + timedelta(days=1)
    if period == "last30days":
        return start_of_today - timedelta(days=29), start_of_today + timedelta(days=1)
    raise ValidationError(f"Unknown period: {period}", details={"supported": list(PERIODS)})
