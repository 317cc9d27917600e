from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from presence.models.status_reminder import StatusReminder
from presence.services import sessions as svc
from presence.services.notifier import DirectMessageResult
from presence.services.reminders import ReminderScheduler, build_reminder_message

from conftest import at

T = at(9)


class FakeSender:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.calls: list[dict] = []

    def __call__(self, *, user_id, blocks, text):  # noqa: ANN001
        self.calls.append({"user_id": user_id, "blocks": blocks, "text": text})
        if self.ok:
            return DirectMessageResult(ok=True, channel="D1", message_ts="1.0")
        return DirectMessageResult(ok=False, error="channel_not_found")


@pytest.fixture()
def sender():
    return FakeSender()


@pytest.fixture()
def scheduler(session_factory, sender):
    return ReminderScheduler(
        session_factory,
        send=sender,
        clock=lambda: T,
        interval_seconds=60,
        idle_minutes=45,
        throttle_minutes=45,
    )


def _reminder(db: Session, user_id: str = "U1") -> StatusReminder:
    db.expire_all()
    return db.get(StatusReminder, user_id)


def _check_in(db: Session, user_id: str = "U1") -> None:
    svc.check_in(db, user_id=user_id, username="alice", now=T)
    db.commit()


def test_check_in_arms_reminder(db: Session):
    _check_in(db)
    reminder = _reminder(db)
    assert reminder.is_active is True
    assert reminder.reminder_count == 0
    assert reminder.last_reminder_sent is None


def test_no_reminder_before_idle_threshold(db: Session, scheduler, sender):
    _check_in(db)
    result = scheduler.tick(T + timedelta(minutes=44))
    assert result.checked == 1
    assert result.not_due == 1
    assert sender.calls == []


def test_exactly_one_reminder_per_window(db: Session, scheduler, sender):
    _check_in(db)
    sent = 0
    for minute in range(45, 90, 5):
        sent += scheduler.tick(T + timedelta(minutes=minute)).sent
    assert sent == 1
    assert len(sender.calls) == 1
    assert sender.calls[0]["user_id"] == "U1"

    reminder = _reminder(db)
    assert reminder.reminder_count == 1
    assert reminder.last_reminder_sent == T + timedelta(minutes=45)

    result = scheduler.tick(T + timedelta(minutes=90))
    assert result.sent == 1
    assert _reminder(db).reminder_count == 2


def test_status_update_resets_idle_window(db: Session, scheduler, sender):
    _check_in(db)
    svc.post_status_update(db, user_id="U1", text="writing docs", now=T + timedelta(minutes=30))
    db.commit()

    assert scheduler.tick(T + timedelta(minutes=60)).not_due == 1
    result = scheduler.tick(T + timedelta(minutes=75))
    assert result.sent == 1
    assert "writing docs" in sender.calls[0]["text"]


def test_no_reminder_while_on_break(db: Session, scheduler, sender):
    _check_in(db)
    svc.start_break(db, user_id="U1", break_type="lunch", now=T + timedelta(minutes=10))
    db.commit()

    result = scheduler.tick(T + timedelta(minutes=60))
    assert result.skipped == 1
    assert sender.calls == []


def test_checkout_disarms_reminder(db: Session, scheduler, sender):
    _check_in(db)
    svc.check_out(db, user_id="U1", now=T + timedelta(minutes=20))
    db.commit()

    assert _reminder(db).is_active is False
    result = scheduler.tick(T + timedelta(minutes=60))
    assert result.checked == 0
    assert sender.calls == []


def test_failed_delivery_leaves_reminder_untouched(db: Session, session_factory):
    _check_in(db)
    failing = FakeSender(ok=False)
    scheduler = ReminderScheduler(session_factory, send=failing, idle_minutes=45, throttle_minutes=45)

    result = scheduler.tick(T + timedelta(minutes=50))
    assert result.failed == 1
    assert len(failing.calls) == 1
    reminder = _reminder(db)
    assert reminder.reminder_count == 0
    assert reminder.last_reminder_sent is None

    assert scheduler.tick(T + timedelta(minutes=55)).failed == 1
    assert len(failing.calls) == 2


def test_separate_throttle_window(db: Session, session_factory, sender):
    _check_in(db)
    scheduler = ReminderScheduler(session_factory, send=sender, idle_minutes=10, throttle_minutes=30)
    assert scheduler.tick(T + timedelta(minutes=10)).sent == 1
    assert scheduler.tick(T + timedelta(minutes=25)).throttled == 1
    assert scheduler.tick(T + timedelta(minutes=40)).sent == 1


def test_tick_uses_injected_clock(db: Session, session_factory, sender):
    _check_in(db)
    scheduler = ReminderScheduler(
        session_factory,
        send=sender,
        clock=lambda: T + timedelta(minutes=46),
        idle_minutes=45,
        throttle_minutes=45,
    )
    result = scheduler.tick()
    assert result.sent == 1
    assert result.sent_to == ["U1"]
    assert result.as_dict()["sent"] == 1


def test_reminder_message_mentions_last_status(db: Session):
    _check_in(db)
    blocks, text = build_reminder_message(
        reminder=_reminder(db),
        checkin_time=T,
        idle_minutes=45,
        last_status="deploying",
    )
    assert text == "Time for a status update! Last status: deploying"
    assert "45 minutes" in blocks[0]["text"]["text"]
    assert "Mon, Jan 5, 2026, 09:00 AM UTC" in blocks[0]["text"]["text"]
    assert blocks[1]["text"]["text"] == "*Last status:* deploying"


def test_raising_sender_does_not_stop_tick(db: Session, session_factory):
    _check_in(db, "U1")
    _check_in(db, "U2")
    calls = []

    def send(*, user_id, blocks, text):  # noqa: ANN001
        calls.append(user_id)
        if user_id == "U1":
            raise ValueError("boom")
        return DirectMessageResult(ok=True)

    scheduler = ReminderScheduler(session_factory, send=send, idle_minutes=45, throttle_minutes=45)
    result = scheduler.tick(T + timedelta(minutes=50))

    assert calls == ["U1", "U2"]
    assert result.failed == 1
    assert result.sent == 1
    assert result.sent_to == ["U2"]
    assert _reminder(db, "U1").reminder_count == 0
    assert _reminder(db, "U2").reminder_count == 1


def test_persistence_failure_skips_only_that_user(db: Session, session_factory, sender):
    _check_in(db, "U1")
    _check_in(db, "U2")
    commits = {"count": 0}

    def flaky_factory() -> Session:
        session = session_factory()
        real_commit = session.commit

        def commit() -> None:
            commits["count"] += 1
            if commits["count"] == 1:
                raise OperationalError("UPDATE status_reminders", {}, Exception("database is locked"))
            real_commit()

        session.commit = commit
        return session

    scheduler = ReminderScheduler(flaky_factory, send=sender, idle_minutes=45, throttle_minutes=45)
    result = scheduler.tick(T + timedelta(minutes=50))

    assert result.checked == 2
    assert result.failed == 1
    assert result.sent_to == ["U2"]
    assert _reminder(db, "U1").reminder_count == 0
    assert _reminder(db, "U1").last_reminder_sent is None
    assert _reminder(db, "U2").reminder_count == 1
