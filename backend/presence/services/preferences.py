from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from presence.models.user_preferences import UserPreferences
from presence.models.user_status import UserStatus
from presence.services.errors import InvalidTimezoneError
from presence.services.timeutils import get_system_timezone, is_valid_timezone, utcnow


def get_user_preferences(db: Session, user_id: str) -> Optional[UserPreferences]:
    return db.get(UserPreferences, user_id)


def update_user_preferences(
    db: Session,
    *,
    user_id: str,
    timezone: Optional[str] = None,
    default_break_durations: Optional[dict] = None,
    notifications: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> UserPreferences:
    """Merge the given fields into the user's preferences, creating them lazily."""
    timestamp = now or utcnow()
    prefs = db.get(UserPreferences, user_id)
    if not prefs:
        prefs = UserPreferences(user_id=user_id, created_at=timestamp)
        db.add(prefs)

    if timezone is not None:
        prefs.timezone = timezone
    if default_break_durations is not None:
        merged = dict(prefs.default_break_durations or {})
        merged.update({k: v for k, v in default_break_durations.items() if v is not None})
        prefs.default_break_durations = merged
    if notifications is not None:
        merged = dict(prefs.notifications or {})
        merged.update(notifications)
        prefs.notifications = merged
    prefs.updated_at = timestamp
    db.flush()
    return prefs


def get_user_timezone(db: Session, user_id: str) -> str:
    prefs = get_user_preferences(db, user_id)
    if prefs and prefs.timezone:
        return prefs.timezone
    return get_system_timezone()


def set_user_timezone(
    db: Session,
    *,
    user_id: str,
    timezone: str,
    now: Optional[datetime] = None,
) -> UserPreferences:
    """Validate and store *timezone*, mirroring it onto the live status record."""
    zone = (timezone or "").strip()
    if not is_valid_timezone(zone):
        raise InvalidTimezoneError(
            f"Invalid timezone: \"{zone}\". Use an identifier like \"America/New_York\" or \"Europe/London\"."
        )
    prefs = update_user_preferences(db, user_id=user_id, timezone=zone, now=now)

    status = db.get(UserStatus, user_id)
    if status:
        status.timezone = zone
        db.flush()
    return prefs
