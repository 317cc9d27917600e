from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from presence.core.settings import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_system_timezone() -> str:
    return settings.default_timezone


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name or not name.strip():
        return False
    try:
        ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def resolve_zone(name: Optional[str]) -> ZoneInfo:
    if is_valid_timezone(name):
        return ZoneInfo(name.strip())
    return ZoneInfo("UTC")


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def date_string(value: datetime) -> str:
    """Calendar day of *value* in UTC as ``YYYY-MM-DD``."""
    return to_utc(value).date().isoformat()


def format_time(value: datetime, tz_name: Optional[str] = None) -> str:
    """Render an instant like ``Mon, Jan 5, 2026, 09:00 AM EST``."""
    local = to_utc(value).astimezone(resolve_zone(tz_name))
    return (
        f"{local.strftime('%a')}, {local.strftime('%b')} {local.day}, {local.year}, "
        f"{local.strftime('%I:%M %p')} {local.tzname()}"
    )


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded half up like the stored totals."""
    seconds = (to_utc(end) - to_utc(start)).total_seconds()
    return round_half_up(seconds / 60)


def format_duration(start: datetime, end: datetime) -> str:
    total_minutes = int((to_utc(end) - to_utc(start)).total_seconds() // 60)
    hours, minutes = divmod(max(total_minutes, 0), 60)
    return f"{hours}h {minutes}m"


def round_half_up(value: float) -> int:
    # round() would use banker's rounding here.
    return math.floor(value + 0.5)
