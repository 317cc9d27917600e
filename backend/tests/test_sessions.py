from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from presence.models.break_record import BreakRecord
from presence.models.checkin_session import CheckinSession
from presence.models.enums import BreakStatus, BreakType, PresenceStatus, SessionStatus
from presence.models.status_update import StatusUpdate
from presence.models.user_status import UserStatus
from presence.services import breaks as break_ledger
from presence.services import sessions as svc
from presence.services.errors import (
    AlreadyActiveError,
    AlreadyOnBreakError,
    BreakNotFoundError,
    NotCheckedInError,
    NotOnBreakError,
)
from presence.services.session_store import read_projection

from conftest import at


def _check_in(db: Session, user_id: str = "U1", **kwargs):
    kwargs.setdefault("now", at(9))
    return svc.check_in(db, user_id=user_id, username="alice", **kwargs)


def test_full_day_totals(db: Session):
    session = _check_in(db)
    svc.start_break(db, user_id="U1", break_type=BreakType.LUNCH, now=at(12))
    ended = svc.end_break(db, user_id="U1", now=at(12, 45))
    assert ended.duration == 45
    assert ended.expected_duration == 45

    done = svc.check_out(db, user_id="U1", now=at(17))
    assert done.session_id == session.session_id
    assert done.status == SessionStatus.COMPLETED
    assert done.total_break_time == 45
    assert done.total_work_time == 435
    assert done.break_count == 1

    status = svc.get_user_status(db, "U1")
    assert status.status == PresenceStatus.CHECKED_OUT
    assert status.current_session_id is None
    assert status.current_session is None
    assert status.last_checkout == at(17)


def test_check_in_creates_projection(db: Session):
    session = _check_in(db, notes="morning")
    assert session.date == "2026-01-05"
    assert session.session_id.startswith("U1_20260105_")
    assert session.timezone == "UTC"
    assert session.notes == {"checkin": "morning"}

    status = svc.get_user_status(db, "U1")
    assert status.status == PresenceStatus.CHECKED_IN
    assert status.current_session_id == session.session_id
    projection = read_projection(status)
    assert projection.checkin_time == at(9)
    assert projection.total_break_time == 0
    assert projection.current_break is None
    assert projection.status_update_count == 0


def test_check_in_twice_is_rejected(db: Session):
    _check_in(db)
    with pytest.raises(AlreadyActiveError) as exc:
        _check_in(db, now=at(10))
    assert "/checkout" in exc.value.message


def test_check_in_while_on_break_is_rejected(db: Session):
    _check_in(db)
    svc.start_break(db, user_id="U1", break_type="short", now=at(10))
    with pytest.raises(AlreadyActiveError):
        _check_in(db, now=at(10, 5))


def test_check_out_without_session(db: Session):
    with pytest.raises(NotCheckedInError):
        svc.check_out(db, user_id="nobody", now=at(9))


def test_second_break_is_rejected(db: Session):
    _check_in(db)
    svc.start_break(db, user_id="U1", break_type="short", now=at(10))
    with pytest.raises(AlreadyOnBreakError):
        svc.start_break(db, user_id="U1", break_type="lunch", now=at(10, 5))


def test_break_requires_check_in(db: Session):
    with pytest.raises(NotCheckedInError):
        svc.start_break(db, user_id="U1", break_type="short", now=at(10))


def test_end_break_when_not_on_break(db: Session):
    _check_in(db)
    with pytest.raises(NotOnBreakError) as exc:
        svc.end_break(db, user_id="U1", now=at(10))
    assert "/break-start" in exc.value.message


def test_break_projection_follows_ledger(db: Session):
    session = _check_in(db)
    record = svc.start_break(db, user_id="U1", break_type="personal", now=at(10))
    status = svc.get_user_status(db, "U1")
    assert status.status == PresenceStatus.ON_BREAK
    projection = read_projection(status)
    assert projection.current_break.id == record.break_id
    assert projection.current_break.type == BreakType.PERSONAL

    svc.end_break(db, user_id="U1", now=at(10, 25))
    status = svc.get_user_status(db, "U1")
    projection = read_projection(status)
    assert status.status == PresenceStatus.CHECKED_IN
    assert projection.current_break is None
    assert projection.total_break_time == 25
    db.refresh(session)
    assert session.total_break_time == 25


def test_checkout_auto_ends_active_break(db: Session):
    _check_in(db)
    record = svc.start_break(db, user_id="U1", break_type="short", now=at(12))
    session = svc.check_out(db, user_id="U1", now=at(12, 30))

    db.refresh(record)
    assert record.status == BreakStatus.COMPLETED
    assert record.duration == 30
    assert record.end_time == at(12, 30)
    assert record.notes == "End: Auto-ended due to checkout"
    assert session.total_break_time == 30
    assert session.total_work_time == 180


def test_break_end_notes_are_appended(db: Session):
    _check_in(db)
    svc.start_break(db, user_id="U1", break_type="short", notes="coffee", now=at(10))
    record = svc.end_break(db, user_id="U1", notes="back", now=at(10, 10))
    assert record.notes == "coffee | End: back"


def test_unknown_break_id_changes_nothing(db: Session):
    session = _check_in(db)
    svc.start_break(db, user_id="U1", break_type="short", now=at(10))
    with pytest.raises(BreakNotFoundError):
        break_ledger.record_break_end(
            db,
            session_id=session.session_id,
            break_id="break_0000000000000ffffff",
            user_id="U1",
            now=at(10, 15),
        )
    db.refresh(session)
    assert session.total_break_time == 0
    assert svc.get_user_status(db, "U1").status == PresenceStatus.ON_BREAK


def test_check_in_after_checkout_starts_new_session(db: Session):
    first = _check_in(db)
    svc.check_out(db, user_id="U1", now=at(10))
    second = _check_in(db, now=at(11))
    assert second.session_id != first.session_id
    assert second.total_break_time == 0
    assert svc.get_user_status(db, "U1").current_session_id == second.session_id


def test_checkin_and_checkout_notes_are_independent(db: Session):
    _check_in(db, notes="start")
    session = svc.check_out(db, user_id="U1", notes="done", now=at(10))
    assert session.notes == {"checkin": "start", "checkout": "done"}

    _check_in(db, now=at(11))
    other = svc.check_out(db, user_id="U1", notes="late", now=at(12))
    assert other.notes == {"checkout": "late"}


def test_work_time_can_go_negative(db: Session):
    _check_in(db)
    svc.start_break(db, user_id="U1", break_type="meeting", now=at(9))
    svc.end_break(db, user_id="U1", now=at(10))
    session = svc.check_out(db, user_id="U1", now=at(9, 30))
    assert session.total_work_time == -30


def test_current_state_lists_recent_updates(db: Session):
    _check_in(db)
    for minute in range(7):
        svc.post_status_update(db, user_id="U1", text=f"step {minute}", now=at(9, minute + 1))
    record = svc.start_break(db, user_id="U1", break_type="short", now=at(10))

    state = svc.get_current_state(db, "U1")
    assert state.status.status == PresenceStatus.ON_BREAK
    assert state.current_session is not None
    assert state.active_break.break_id == record.break_id
    assert [u.status for u in state.recent_status_updates] == [f"step {i}" for i in range(6, 1, -1)]


def test_current_state_unknown_user(db: Session):
    assert svc.get_current_state(db, "ghost") is None


def test_rebuild_repairs_drifted_projection(db: Session):
    session = _check_in(db)
    svc.start_break(db, user_id="U1", break_type="short", now=at(10))
    svc.end_break(db, user_id="U1", now=at(10, 15))
    svc.post_status_update(db, user_id="U1", text="reviewing", now=at(10, 20))
    record = svc.start_break(db, user_id="U1", break_type="lunch", now=at(12))

    status = svc.get_user_status(db, "U1")
    status.current_session = None
    db.flush()
    assert not svc.projection_is_consistent(status)

    state = svc.get_current_state(db, "U1")
    assert svc.projection_is_consistent(state.status)
    projection = read_projection(state.status)
    assert state.status.status == PresenceStatus.ON_BREAK
    assert state.status.current_session_id == session.session_id
    assert projection.total_break_time == 15
    assert projection.current_break.id == record.break_id
    assert projection.current_work_status == "reviewing"
    assert projection.status_update_count == 1


def test_rebuild_without_active_session_resets(db: Session):
    _check_in(db)
    svc.check_out(db, user_id="U1", now=at(10))
    status = svc.get_user_status(db, "U1")
    status.status = PresenceStatus.CHECKED_IN
    db.flush()

    rebuilt = svc.rebuild_projection(db, user_id="U1", now=at(10, 5))
    assert rebuilt.status == PresenceStatus.CHECKED_OUT
    assert rebuilt.current_session is None
    assert rebuilt.current_session_id is None


def test_session_queries(db: Session):
    _check_in(db)
    svc.check_in(db, user_id="U2", username="bob", now=at(9, 30))
    svc.check_out(db, user_id="U1", now=at(17))

    day = svc.get_sessions_by_date(db, "2026-01-05")
    assert [s.user_id for s in day] == ["U1", "U2"]
    assert [u.user_id for u in svc.get_active_users(db)] == ["U2"]

    history = svc.get_user_session_history(
        db,
        user_id="U1",
        start_date=at(0).date(),
        end_date=at(0).date(),
    )
    assert len(history) == 1


def _columns(obj) -> dict:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


def test_entities_survive_reload(db: Session):
    checkin = datetime(2026, 1, 5, 9, 0, 0, 123456, tzinfo=timezone.utc)
    break_start = datetime(2026, 1, 5, 10, 15, 30, 654321, tzinfo=timezone.utc)
    session = svc.check_in(db, user_id="U1", username="alice", notes="hi", now=checkin)
    update = svc.post_status_update(db, user_id="U1", text="triage", now=checkin + timedelta(minutes=5))
    record = svc.start_break(db, user_id="U1", break_type="short", notes="coffee", now=break_start)
    status = svc.get_user_status(db, "U1")
    db.commit()

    entities = [session, record, update, status]
    before = [_columns(obj) for obj in entities]

    db.expire_all()
    reloaded = [
        db.get(CheckinSession, session.session_id),
        db.get(BreakRecord, record.break_id),
        db.get(StatusUpdate, update.update_id),
        db.get(UserStatus, "U1"),
    ]
    assert [_columns(obj) for obj in reloaded] == before

    assert reloaded[0].checkin_time == checkin
    assert reloaded[0].checkin_time.tzinfo is not None
    assert reloaded[1].start_time == break_start
    projection = read_projection(reloaded[3])
    assert projection.checkin_time == checkin
    assert projection.current_break.start_time == break_start
    assert projection.current_break.start_time.tzinfo is not None
