from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import get_settings

VENUE_TZ = ZoneInfo(get_settings().venue_timezone)


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_naive_to_venue(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc).astimezone(VENUE_TZ)


def local_minutes_to_utc_naive(date_key: date, minutes: int) -> datetime:
    """Venue wall-clock minutes after midnight of ``date_key`` as a UTC naive datetime."""
    local = datetime.combine(date_key, time(0), tzinfo=VENUE_TZ) + timedelta(minutes=minutes)
    return to_utc_naive(local)


def utc_naive_to_local_minutes(dt: datetime, date_key: date) -> int:
    """Inverse of ``local_minutes_to_utc_naive``; may be negative or past 1440."""
    local = utc_naive_to_venue(dt).replace(tzinfo=None)
    midnight = datetime.combine(date_key, time(0))
    return int((local - midnight).total_seconds() // 60)


def venue_today(now_utc: Optional[datetime] = None) -> tuple[date, int]:
    """Venue-local date and minute-of-day for ``now_utc`` (defaults to the current time)."""
    now = now_utc or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(VENUE_TZ)
    return local.date(), local.hour * 60 + local.minute


def format_minutes(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours % 24 < 12 else "PM"
    return f"{(hours + 11) % 12 + 1}:{mins:02d} {suffix}"
