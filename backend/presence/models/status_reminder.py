from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from presence.db.base import Base, TimestampMixin
from presence.db.types import UTCDateTime


class StatusReminder(TimestampMixin, Base):
    __tablename__ = "status_reminders"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    reminder_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    last_reminder_sent: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    last_status_update: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
