"""Import all models so SQLAlchemy metadata is fully registered."""

from presence.db.base import Base

from presence.models.break_record import BreakRecord
from presence.models.checkin_session import CheckinSession
from presence.models.enums import BreakStatus, BreakType, PresenceStatus, SessionStatus
from presence.models.status_reminder import StatusReminder
from presence.models.status_update import StatusUpdate
from presence.models.user_preferences import UserPreferences
from presence.models.user_status import UserStatus

__all__ = [
    "Base",
    "BreakRecord",
    "BreakStatus",
    "BreakType",
    "CheckinSession",
    "PresenceStatus",
    "SessionStatus",
    "StatusReminder",
    "StatusUpdate",
    "UserPreferences",
    "UserStatus",
]
