from __future__ import annotations

import enum


class PresenceStatus(str, enum.Enum):
    CHECKED_OUT = "checked-out"
    CHECKED_IN = "checked-in"
    ON_BREAK = "on-break"
    OFFLINE = "offline"


class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class BreakType(str, enum.Enum):
    SHORT = "short"
    LUNCH = "lunch"
    PERSONAL = "personal"
    MEETING = "meeting"


class BreakStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


ACTIVE_PRESENCE = frozenset({PresenceStatus.CHECKED_IN, PresenceStatus.ON_BREAK})
