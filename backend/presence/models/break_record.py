from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from presence.db.base import Base, utcnow
from presence.db.types import UTCDateTime
from presence.models._columns import enum_column
from presence.models.enums import BreakStatus, BreakType


class BreakRecord(Base):
    __tablename__ = "breaks"

    break_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("checkin_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[BreakType] = mapped_column(enum_column(BreakType, "break_type"), nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    expected_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[BreakStatus] = mapped_column(
        enum_column(BreakStatus, "break_status"),
        nullable=False,
        default=BreakStatus.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    session: Mapped["CheckinSession"] = relationship(back_populates="breaks")
