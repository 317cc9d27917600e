from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from presence.db.base import Base, TimestampMixin
from presence.db.types import UTCDateTime
from presence.models._columns import enum_column
from presence.models.enums import SessionStatus


class CheckinSession(TimestampMixin, Base):
    __tablename__ = "checkin_sessions"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    checkin_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    checkout_time: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    status: Mapped[SessionStatus] = mapped_column(
        enum_column(SessionStatus, "session_status"),
        nullable=False,
        default=SessionStatus.ACTIVE,
        index=True,
    )
    total_break_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_work_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    checkin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkout_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    break_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status_update_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_work_status: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    breaks: Mapped[list["BreakRecord"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="BreakRecord.start_time.desc()",
    )
    status_updates: Mapped[list["StatusUpdate"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="StatusUpdate.timestamp.desc()",
    )

    @property
    def notes(self) -> Optional[dict]:
        notes = {}
        if self.checkin_notes:
            notes["checkin"] = self.checkin_notes
        if self.checkout_notes:
            notes["checkout"] = self.checkout_notes
        return notes or None
