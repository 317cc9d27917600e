"""Break sub-ledger: start/end of typed breaks within a session.

Callers gate these functions on the user's presence status; the ledger
itself does not re-check whether the user is checked in.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from presence.models.break_record import BreakRecord
from presence.models.enums import BreakStatus, BreakType, PresenceStatus
from presence.models.user_status import UserStatus
from presence.schemas.presence import CurrentBreak
from presence.services.break_types import expected_duration
from presence.services.errors import BreakNotFoundError, NotOnBreakError
from presence.services.ids import generate_break_id
from presence.services.session_store import (
    increment_session_counters,
    read_projection,
    touch_activity,
    write_projection,
)
from presence.services.timeutils import elapsed_minutes, utcnow

logger = logging.getLogger(__name__)

END_NOTES_SEPARATOR = " | End: "


def record_break_start(
    db: Session,
    *,
    session_id: str,
    user_id: str,
    break_type: BreakType | str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BreakRecord:
    timestamp = now or utcnow()
    kind = BreakType(break_type)

    record = BreakRecord(
        break_id=generate_break_id(now=timestamp),
        session_id=session_id,
        user_id=user_id,
        type=kind,
        start_time=timestamp,
        expected_duration=expected_duration(kind),
        notes=notes or None,
        status=BreakStatus.ACTIVE,
        created_at=timestamp,
    )
    db.add(record)
    db.flush()

    increment_session_counters(db, session_id, now=timestamp, break_count=1)

    status = db.get(UserStatus, user_id)
    projection = read_projection(status)
    if status and projection:
        projection.current_break = CurrentBreak(id=record.break_id, type=kind, start_time=timestamp)
        status.status = PresenceStatus.ON_BREAK
        write_projection(status, projection)
        touch_activity(status, timestamp)
    db.flush()
    return record


def record_break_end(
    db: Session,
    *,
    session_id: str,
    break_id: str,
    user_id: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BreakRecord:
    timestamp = now or utcnow()
    record = db.get(BreakRecord, break_id)
    if not record or record.session_id != session_id:
        logger.error(
            "Break %s not found in session %s",
            break_id,
            session_id,
            extra={"user_id": user_id, "session_id": session_id},
        )
        raise BreakNotFoundError()
    if record.status == BreakStatus.COMPLETED:
        raise NotOnBreakError()

    duration = elapsed_minutes(record.start_time, timestamp)
    record.end_time = timestamp
    record.duration = duration
    record.status = BreakStatus.COMPLETED
    if notes:
        record.notes = f"{record.notes}{END_NOTES_SEPARATOR}{notes}" if record.notes else f"End: {notes}"
    db.flush()

    increment_session_counters(db, session_id, now=timestamp, total_break_time=duration)

    status = db.get(UserStatus, user_id)
    projection = read_projection(status)
    if status and projection:
        projection.total_break_time += duration
        projection.current_break = None
        status.status = PresenceStatus.CHECKED_IN
        write_projection(status, projection)
        touch_activity(status, timestamp)
    db.flush()
    return record


def get_break(db: Session, break_id: str) -> Optional[BreakRecord]:
    return db.get(BreakRecord, break_id)


def get_session_breaks(db: Session, session_id: str) -> List[BreakRecord]:
    return (
        db.query(BreakRecord)
        .filter(BreakRecord.session_id == session_id)
        .order_by(BreakRecord.start_time.desc(), BreakRecord.break_id.desc())
        .all()
    )


def get_active_break(db: Session, session_id: str) -> Optional[BreakRecord]:
    return (
        db.query(BreakRecord)
        .filter(
            BreakRecord.session_id == session_id,
            BreakRecord.status == BreakStatus.ACTIVE,
        )
        .order_by(BreakRecord.start_time.desc())
        .first()
    )
