from presence.db.base import Base, TimestampMixin, utcnow
from presence.db.session import SessionLocal, engine, get_db
from presence.db.types import UTCDateTime

__all__ = [
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "utcnow",
    "engine",
    "SessionLocal",
    "get_db",
]
