from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from presence.schemas.base import ORMModel


class DefaultBreakDurations(ORMModel):
    short: Optional[int] = Field(default=None, ge=0)
    lunch: Optional[int] = Field(default=None, ge=0)
    personal: Optional[int] = Field(default=None, ge=0)


class NotificationPreferences(ORMModel):
    break_reminders: bool = True
    checkout_reminders: bool = True
    reminder_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")


class UserPreferencesRead(ORMModel):
    user_id: str
    timezone: Optional[str] = None
    default_break_durations: Optional[DefaultBreakDurations] = None
    notifications: Optional[NotificationPreferences] = None
    created_at: datetime
    updated_at: datetime


class UserPreferencesUpdate(ORMModel):
    timezone: Optional[str] = None
    default_break_durations: Optional[DefaultBreakDurations] = None
    notifications: Optional[NotificationPreferences] = None


class TimezoneUpdate(ORMModel):
    timezone: str = Field(min_length=1)
