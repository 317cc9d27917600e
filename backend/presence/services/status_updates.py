"""Status-update sub-ledger: append-only free-text log per session."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from presence.models.status_update import StatusUpdate
from presence.models.user_status import UserStatus
from presence.services.ids import generate_status_update_id
from presence.services.reminders import touch_reminder
from presence.services.session_store import (
    increment_session_counters,
    read_projection,
    touch_activity,
    write_projection,
)
from presence.services.timeutils import utcnow

# Updates in one session must be strictly ordered; a clock tie is nudged forward.
ORDERING_STEP = timedelta(milliseconds=1)


def add_status_update(
    db: Session,
    *,
    session_id: str,
    user_id: str,
    username: str,
    text: str,
    now: Optional[datetime] = None,
) -> StatusUpdate:
    timestamp = now or utcnow()
    previous = get_latest_status_update(db, session_id)
    if previous and timestamp <= previous.timestamp:
        timestamp = previous.timestamp + ORDERING_STEP

    update = StatusUpdate(
        update_id=generate_status_update_id(now=timestamp),
        session_id=session_id,
        user_id=user_id,
        username=username,
        status=text,
        timestamp=timestamp,
        previous_status=previous.status if previous else None,
    )
    db.add(update)
    db.flush()

    increment_session_counters(
        db,
        session_id,
        now=timestamp,
        status_update_count=1,
        last_work_status=text,
    )

    status = db.get(UserStatus, user_id)
    projection = read_projection(status)
    if status and projection:
        projection.current_work_status = text
        projection.status_update_count += 1
        write_projection(status, projection)
        touch_activity(status, timestamp)

    touch_reminder(db, user_id=user_id, at=timestamp)
    db.flush()
    return update


def list_updates(db: Session, session_id: str, limit: Optional[int] = None) -> List[StatusUpdate]:
    """Updates of *session_id*, newest first."""
    query = (
        db.query(StatusUpdate)
        .filter(StatusUpdate.session_id == session_id)
        .order_by(StatusUpdate.timestamp.desc(), StatusUpdate.update_id.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def get_latest_status_update(db: Session, session_id: str) -> Optional[StatusUpdate]:
    updates = list_updates(db, session_id, limit=1)
    return updates[0] if updates else None
