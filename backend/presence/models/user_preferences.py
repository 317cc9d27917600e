from __future__ import annotations

from typing import Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from presence.db.base import Base, TimestampMixin


class UserPreferences(TimestampMixin, Base):
    __tablename__ = "user_preferences"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # {"short": 10, "lunch": 60, "personal": 20}
    default_break_durations: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    # {"break_reminders": bool, "checkout_reminders": bool, "reminder_time": "HH:MM"}
    notifications: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
