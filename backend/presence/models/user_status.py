"""Live presence projection, one row per user, overwritten in place."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from presence.db.base import Base, utcnow
from presence.db.types import UTCDateTime
from presence.models._columns import enum_column
from presence.models.enums import PresenceStatus


class UserStatus(Base):
    __tablename__ = "user_status"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[PresenceStatus] = mapped_column(
        enum_column(PresenceStatus, "presence_status"),
        nullable=False,
        default=PresenceStatus.CHECKED_OUT,
        index=True,
    )
    current_session_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    last_checkin: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    last_checkout: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    last_activity: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # Serialized CurrentSessionProjection; always written as a whole object.
    current_session: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
