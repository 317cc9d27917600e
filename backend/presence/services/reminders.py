"""Idle status reminders.

A ``StatusReminder`` row exists per user; it is (re)armed when a session
starts, switched off when the session completes, and bumped by every status
update. ``ReminderScheduler`` polls the armed rows and nudges users who have
been checked in without posting an update for ``idle_minutes``.

Two clocks are tracked per user: ``last_status_update`` says whether the
user is stale, ``last_reminder_sent`` says whether we already nagged them.
A reminder goes out only when both are at least their threshold old.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from presence.core.observability import (
    presence_active_sessions,
    presence_reminder_ticks_total,
    presence_reminders_failed_total,
    presence_reminders_sent_total,
)
from presence.core.settings import settings
from presence.models.checkin_session import CheckinSession
from presence.models.enums import PresenceStatus
from presence.models.status_reminder import StatusReminder
from presence.models.status_update import StatusUpdate
from presence.models.user_status import UserStatus
from presence.services.notifier import DirectMessageResult, send_direct_message
from presence.services.timeutils import format_time, utcnow

logger = logging.getLogger(__name__)

SendDirectMessage = Callable[..., DirectMessageResult]


def register_reminder(db: Session, *, session: CheckinSession, now: Optional[datetime] = None) -> StatusReminder:
    """Arm the user's reminder for a freshly started *session*."""
    timestamp = now or utcnow()
    reminder = db.get(StatusReminder, session.user_id)
    if not reminder:
        reminder = StatusReminder(user_id=session.user_id, created_at=timestamp)
        db.add(reminder)
    reminder.username = session.username
    reminder.session_id = session.session_id
    reminder.timezone = session.timezone
    reminder.reminder_count = 0
    reminder.is_active = True
    reminder.last_reminder_sent = None
    reminder.last_status_update = None
    reminder.updated_at = timestamp
    db.flush()
    return reminder


def deactivate_reminder(db: Session, *, user_id: str, now: Optional[datetime] = None) -> Optional[StatusReminder]:
    reminder = db.get(StatusReminder, user_id)
    if reminder and reminder.is_active:
        reminder.is_active = False
        reminder.updated_at = now or utcnow()
        db.flush()
    return reminder


def touch_reminder(db: Session, *, user_id: str, at: datetime) -> Optional[StatusReminder]:
    reminder = db.get(StatusReminder, user_id)
    if reminder and reminder.is_active:
        if reminder.last_status_update is None or at > reminder.last_status_update:
            reminder.last_status_update = at
        reminder.updated_at = at
        db.flush()
    return reminder


def get_active_reminders(db: Session) -> List[StatusReminder]:
    return (
        db.query(StatusReminder)
        .filter(StatusReminder.is_active.is_(True))
        .order_by(StatusReminder.user_id)
        .all()
    )


def _latest_update(db: Session, session_id: str) -> Optional[StatusUpdate]:
    return (
        db.query(StatusUpdate)
        .filter(StatusUpdate.session_id == session_id)
        .order_by(StatusUpdate.timestamp.desc())
        .first()
    )


def build_reminder_message(
    *,
    reminder: StatusReminder,
    checkin_time: Optional[datetime],
    idle_minutes: int,
    last_status: Optional[str],
) -> tuple[list[dict], str]:
    since = f" since {format_time(checkin_time, reminder.timezone)}" if checkin_time else ""
    headline = (
        f"⏰ *Time for a status update!*\n"
        f"You've been checked in{since} and haven't shared an update in the last {idle_minutes} minutes."
    )
    blocks: list[dict] = [{"type": "section", "text": {"type": "mrkdwn", "text": headline}}]
    if last_status:
        blocks.append(
            {"type": "section", "text": {"type": "mrkdwn", "text": f"*Last status:* {last_status}"}}
        )
    blocks.append(
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": "Use `/status-update <what you're working on>` to post an update.",
                }
            ],
        }
    )
    text = "Time for a status update!"
    if last_status:
        text += f" Last status: {last_status}"
    return blocks, text


@dataclass
class TickResult:
    timestamp: datetime
    checked: int = 0
    sent: int = 0
    skipped: int = 0
    throttled: int = 0
    not_due: int = 0
    failed: int = 0
    sent_to: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "checked": self.checked,
            "sent": self.sent,
            "skipped": self.skipped,
            "throttled": self.throttled,
            "not_due": self.not_due,
            "failed": self.failed,
        }


class ReminderScheduler:
    """Fixed-interval poll over armed reminders.

    Clock, interval, thresholds, the session factory and the message sender
    are all injectable so a test can drive ticks without real delays.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        send: SendDirectMessage = send_direct_message,
        clock: Callable[[], datetime] = utcnow,
        interval_seconds: Optional[float] = None,
        idle_minutes: Optional[int] = None,
        throttle_minutes: Optional[int] = None,
    ) -> None:
        self.session_factory = session_factory
        self.send = send
        self.clock = clock
        self.interval_seconds = interval_seconds or settings.reminder_poll_interval_seconds
        self.idle_minutes = idle_minutes or settings.reminder_idle_minutes
        self.throttle_minutes = throttle_minutes or settings.reminder_throttle_minutes
        self._stop = threading.Event()

    @property
    def idle_threshold(self) -> timedelta:
        return timedelta(minutes=self.idle_minutes)

    @property
    def throttle_window(self) -> timedelta:
        return timedelta(minutes=self.throttle_minutes)

    def tick(self, now: Optional[datetime] = None) -> TickResult:
        timestamp = now or self.clock()
        result = TickResult(timestamp=timestamp)
        presence_reminder_ticks_total.inc()

        with self.session_factory() as db:
            try:
                reminders = get_active_reminders(db)
            except SQLAlchemyError:
                logger.exception("Could not load active reminders")
                return result
            presence_active_sessions.set(len(reminders))

            for reminder in reminders:
                result.checked += 1
                user_id = reminder.user_id
                try:
                    outcome = self._process(db, reminder, timestamp)
                    db.commit()
                except SQLAlchemyError:
                    db.rollback()
                    logger.exception("Reminder processing failed", extra={"user_id": user_id})
                    presence_reminders_failed_total.labels(reason="persistence").inc()
                    result.failed += 1
                    continue

                if outcome == "sent":
                    result.sent += 1
                    result.sent_to.append(user_id)
                elif outcome == "failed":
                    result.failed += 1
                elif outcome == "throttled":
                    result.throttled += 1
                elif outcome == "not_due":
                    result.not_due += 1
                else:
                    result.skipped += 1
        return result

    def _process(self, db: Session, reminder: StatusReminder, now: datetime) -> str:
        status = db.get(UserStatus, reminder.user_id)
        if not status or status.status != PresenceStatus.CHECKED_IN:
            return "skipped"
        if status.current_session_id != reminder.session_id:
            return "skipped"

        session = db.get(CheckinSession, reminder.session_id)
        latest = None
        reference = reminder.last_status_update
        if reference is None:
            latest = _latest_update(db, reminder.session_id)
            if latest:
                reference = latest.timestamp
            elif session:
                reference = session.checkin_time
        if reference is None:
            return "skipped"

        if now - reference < self.idle_threshold:
            return "not_due"
        if reminder.last_reminder_sent and now - reminder.last_reminder_sent < self.throttle_window:
            return "throttled"

        last_status = None
        if session and session.last_work_status:
            last_status = session.last_work_status
        elif latest:
            last_status = latest.status

        blocks, text = build_reminder_message(
            reminder=reminder,
            checkin_time=session.checkin_time if session else None,
            idle_minutes=self.idle_minutes,
            last_status=last_status,
        )
        try:
            delivery = self.send(user_id=reminder.user_id, blocks=blocks, text=text)
        except Exception:
            logger.exception(
                "Reminder delivery raised",
                extra={"user_id": reminder.user_id, "session_id": reminder.session_id},
            )
            presence_reminders_failed_total.labels(reason="delivery").inc()
            return "failed"
        if not delivery.ok:
            logger.warning(
                "Reminder delivery failed: %s",
                delivery.error,
                extra={"user_id": reminder.user_id, "session_id": reminder.session_id},
            )
            presence_reminders_failed_total.labels(reason="delivery").inc()
            return "failed"

        reminder.reminder_count = (reminder.reminder_count or 0) + 1
        reminder.last_reminder_sent = now
        reminder.updated_at = now
        db.flush()
        presence_reminders_sent_total.inc()
        logger.info(
            "Reminder sent",
            extra={"user_id": reminder.user_id, "session_id": reminder.session_id},
        )
        return "sent"

    def run_forever(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:  # pragma: no cover
                logger.exception("Reminder tick failed")
            self._stop.wait(self.interval_seconds)

    def stop(self) -> None:
        self._stop.set()
