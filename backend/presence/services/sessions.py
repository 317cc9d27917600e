"""Session state machine.

Owns the ``checked-out -> checked-in -> on-break -> checked-in -> ...
-> checked-out`` lifecycle for a single user. ``UserStatus.current_session``
is a denormalized cache of the in-progress session; ``rebuild_projection``
recomputes it from the authoritative ``CheckinSession`` when it drifts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from presence.core.settings import settings
from presence.models.break_record import BreakRecord
from presence.models.checkin_session import CheckinSession
from presence.models.enums import ACTIVE_PRESENCE, BreakStatus, BreakType, PresenceStatus, SessionStatus
from presence.models.status_update import StatusUpdate
from presence.models.user_status import UserStatus
from presence.schemas.presence import CurrentBreak, CurrentSessionProjection, UserStatusRead
from presence.services import breaks as break_ledger
from presence.services import status_updates as status_ledger
from presence.services.errors import (
    AlreadyActiveError,
    AlreadyOnBreakError,
    NotCheckedInError,
    NotOnBreakError,
    SessionNotFoundError,
)
from presence.services.ids import generate_session_id
from presence.services.preferences import get_user_timezone
from presence.services.reminders import deactivate_reminder, register_reminder
from presence.services.session_store import read_projection, touch_activity, write_projection
from presence.services.timeutils import date_string, elapsed_minutes, utcnow

logger = logging.getLogger(__name__)

AUTO_END_NOTE = "Auto-ended due to checkout"


@dataclass
class UserCurrentState:
    status: UserStatus
    current_session: Optional[CheckinSession] = None
    active_break: Optional[BreakRecord] = None
    recent_status_updates: List[StatusUpdate] = field(default_factory=list)


def get_user_status(db: Session, user_id: str) -> Optional[UserStatus]:
    return db.get(UserStatus, user_id)


def get_session(db: Session, session_id: str) -> Optional[CheckinSession]:
    return db.get(CheckinSession, session_id)


def _require_active_session(db: Session, status: UserStatus) -> CheckinSession:
    session = get_session(db, status.current_session_id) if status.current_session_id else None
    if not session:
        logger.error(
            "Session %s referenced by user status not found",
            status.current_session_id,
            extra={"user_id": status.user_id, "session_id": status.current_session_id},
        )
        raise SessionNotFoundError()
    if session.status != SessionStatus.ACTIVE:
        raise NotCheckedInError()
    return session


def check_in(
    db: Session,
    *,
    user_id: str,
    username: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckinSession:
    timestamp = now or utcnow()
    status = get_user_status(db, user_id)
    if status and status.status in ACTIVE_PRESENCE:
        raise AlreadyActiveError()

    timezone = get_user_timezone(db, user_id)
    session = CheckinSession(
        session_id=generate_session_id(user_id, now=timestamp),
        user_id=user_id,
        username=username,
        date=date_string(timestamp),
        checkin_time=timestamp,
        status=SessionStatus.ACTIVE,
        total_break_time=0,
        checkin_notes=notes or None,
        timezone=timezone,
        break_count=0,
        status_update_count=0,
        created_at=timestamp,
        updated_at=timestamp,
    )
    db.add(session)

    if not status:
        status = UserStatus(user_id=user_id, last_activity=timestamp)
        db.add(status)
    status.username = username
    status.status = PresenceStatus.CHECKED_IN
    status.current_session_id = session.session_id
    status.last_checkin = timestamp
    status.timezone = timezone
    write_projection(status, CurrentSessionProjection(checkin_time=timestamp))
    touch_activity(status, timestamp)
    db.flush()

    register_reminder(db, session=session, now=timestamp)
    logger.info("Checked in", extra={"user_id": user_id, "session_id": session.session_id})
    return session


def check_out(
    db: Session,
    *,
    user_id: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckinSession:
    timestamp = now or utcnow()
    status = get_user_status(db, user_id)
    if not status or status.status not in ACTIVE_PRESENCE or not status.current_session_id:
        raise NotCheckedInError()
    session = _require_active_session(db, status)

    if status.status == PresenceStatus.ON_BREAK:
        _auto_end_break(db, status=status, session=session, now=timestamp)

    db.refresh(session)
    session.checkout_time = timestamp
    session.total_work_time = elapsed_minutes(session.checkin_time, timestamp) - session.total_break_time
    session.status = SessionStatus.COMPLETED
    if notes:
        session.checkout_notes = notes
    session.updated_at = timestamp

    status.status = PresenceStatus.CHECKED_OUT
    status.current_session_id = None
    status.last_checkout = timestamp
    write_projection(status, None)
    touch_activity(status, timestamp)
    db.flush()

    deactivate_reminder(db, user_id=user_id, now=timestamp)
    logger.info("Checked out", extra={"user_id": user_id, "session_id": session.session_id})
    return session


def _auto_end_break(db: Session, *, status: UserStatus, session: CheckinSession, now: datetime) -> None:
    projection = read_projection(status)
    active = None
    if projection and projection.current_break:
        active = break_ledger.get_break(db, projection.current_break.id)
    if not active or active.status != BreakStatus.ACTIVE:
        active = break_ledger.get_active_break(db, session.session_id)
    if not active:
        logger.warning(
            "On break without a live break record; checking out anyway",
            extra={"user_id": status.user_id, "session_id": session.session_id},
        )
        return
    break_ledger.record_break_end(
        db,
        session_id=session.session_id,
        break_id=active.break_id,
        user_id=status.user_id,
        notes=AUTO_END_NOTE,
        now=now,
    )


def start_break(
    db: Session,
    *,
    user_id: str,
    break_type: BreakType | str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BreakRecord:
    status = get_user_status(db, user_id)
    if status and status.status == PresenceStatus.ON_BREAK:
        raise AlreadyOnBreakError()
    if not status or status.status != PresenceStatus.CHECKED_IN or not status.current_session_id:
        raise NotCheckedInError()
    session = _require_active_session(db, status)
    return break_ledger.record_break_start(
        db,
        session_id=session.session_id,
        user_id=user_id,
        break_type=break_type,
        notes=notes,
        now=now,
    )


def end_break(
    db: Session,
    *,
    user_id: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BreakRecord:
    status = get_user_status(db, user_id)
    if not status or status.status != PresenceStatus.ON_BREAK or not status.current_session_id:
        raise NotOnBreakError()
    session = _require_active_session(db, status)

    projection = read_projection(status)
    if projection and projection.current_break:
        break_id = projection.current_break.id
    else:
        active = break_ledger.get_active_break(db, session.session_id)
        if not active:
            raise NotOnBreakError()
        break_id = active.break_id
    return break_ledger.record_break_end(
        db,
        session_id=session.session_id,
        break_id=break_id,
        user_id=user_id,
        notes=notes,
        now=now,
    )


def post_status_update(
    db: Session,
    *,
    user_id: str,
    text: str,
    username: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StatusUpdate:
    status = get_user_status(db, user_id)
    if not status or status.status not in ACTIVE_PRESENCE or not status.current_session_id:
        raise NotCheckedInError()
    session = _require_active_session(db, status)
    return status_ledger.add_status_update(
        db,
        session_id=session.session_id,
        user_id=user_id,
        username=username or status.username,
        text=text,
        now=now,
    )


def projection_is_consistent(status: UserStatus) -> bool:
    try:
        UserStatusRead.model_validate(status)
    except ValidationError:
        return False
    return True


def rebuild_projection(db: Session, *, user_id: str, now: Optional[datetime] = None) -> Optional[UserStatus]:
    """Recompute ``UserStatus.current_session`` from the authoritative rows."""
    timestamp = now or utcnow()
    status = get_user_status(db, user_id)
    if not status:
        return None

    session = get_session(db, status.current_session_id) if status.current_session_id else None
    if not session or session.status != SessionStatus.ACTIVE:
        session = (
            db.query(CheckinSession)
            .filter(CheckinSession.user_id == user_id, CheckinSession.status == SessionStatus.ACTIVE)
            .order_by(CheckinSession.checkin_time.desc())
            .first()
        )

    if not session:
        status.status = PresenceStatus.CHECKED_OUT
        status.current_session_id = None
        write_projection(status, None)
        db.flush()
        logger.info("Projection reset to checked-out", extra={"user_id": user_id})
        return status

    active_break = break_ledger.get_active_break(db, session.session_id)
    latest = status_ledger.get_latest_status_update(db, session.session_id)
    completed_break_minutes = sum(
        b.duration or 0 for b in break_ledger.get_session_breaks(db, session.session_id)
        if b.status == BreakStatus.COMPLETED
    )
    projection = CurrentSessionProjection(
        checkin_time=session.checkin_time,
        total_break_time=max(completed_break_minutes, 0),
        current_break=(
            CurrentBreak(id=active_break.break_id, type=active_break.type, start_time=active_break.start_time)
            if active_break
            else None
        ),
        current_work_status=latest.status if latest else session.last_work_status,
        status_update_count=db.query(StatusUpdate).filter(StatusUpdate.session_id == session.session_id).count(),
    )
    status.status = PresenceStatus.ON_BREAK if active_break else PresenceStatus.CHECKED_IN
    status.current_session_id = session.session_id
    write_projection(status, projection)
    touch_activity(status, timestamp)
    db.flush()
    logger.info("Projection rebuilt", extra={"user_id": user_id, "session_id": session.session_id})
    return status


def get_current_state(db: Session, user_id: str) -> Optional[UserCurrentState]:
    status = get_user_status(db, user_id)
    if not status:
        return None
    if not projection_is_consistent(status):
        logger.warning("Inconsistent projection, rebuilding", extra={"user_id": user_id})
        rebuild_projection(db, user_id=user_id)

    state = UserCurrentState(status=status)
    if status.current_session_id:
        session = get_session(db, status.current_session_id)
        if session:
            state.current_session = session
            state.recent_status_updates = status_ledger.list_updates(
                db, session.session_id, limit=settings.recent_status_update_limit
            )
            projection = read_projection(status)
            if projection and projection.current_break:
                record = break_ledger.get_break(db, projection.current_break.id)
                if record and record.session_id == session.session_id:
                    state.active_break = record
    return state


def get_user_session_history(
    db: Session,
    *,
    user_id: str,
    start_date: date,
    end_date: date,
) -> List[CheckinSession]:
    return (
        db.query(CheckinSession)
        .filter(
            CheckinSession.user_id == user_id,
            CheckinSession.date >= start_date.isoformat(),
            CheckinSession.date <= end_date.isoformat(),
        )
        .order_by(CheckinSession.date.desc(), CheckinSession.checkin_time.desc())
        .all()
    )


def get_sessions_by_date(db: Session, day: str) -> List[CheckinSession]:
    return (
        db.query(CheckinSession)
        .filter(CheckinSession.date == day)
        .order_by(CheckinSession.checkin_time)
        .all()
    )


def get_active_users(db: Session) -> List[UserStatus]:
    return (
        db.query(UserStatus)
        .filter(UserStatus.status.in_(list(ACTIVE_PRESENCE)))
        .order_by(UserStatus.user_id)
        .all()
    )
