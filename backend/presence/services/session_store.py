"""Shared write helpers for session aggregates and the live projection.

Session counters are changed with single ``UPDATE ... SET x = x + n``
statements so interleaved sub-ledger writes commute. The projection on
``UserStatus.current_session`` is always replaced as a whole object.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from presence.models.checkin_session import CheckinSession
from presence.models.user_status import UserStatus
from presence.schemas.presence import CurrentSessionProjection


def read_projection(status: Optional[UserStatus]) -> Optional[CurrentSessionProjection]:
    if not status or not status.current_session:
        return None
    return CurrentSessionProjection.model_validate(status.current_session)


def write_projection(status: UserStatus, projection: Optional[CurrentSessionProjection]) -> None:
    status.current_session = projection.model_dump(mode="json") if projection else None


def touch_activity(status: UserStatus, now: datetime) -> None:
    if status.last_activity is None or now > status.last_activity:
        status.last_activity = now


def increment_session_counters(
    db: Session,
    session_id: str,
    *,
    now: datetime,
    break_count: int = 0,
    status_update_count: int = 0,
    total_break_time: int = 0,
    last_work_status: Optional[str] = None,
) -> None:
    values: dict = {"updated_at": now}
    if break_count:
        values["break_count"] = CheckinSession.break_count + break_count
    if status_update_count:
        values["status_update_count"] = CheckinSession.status_update_count + status_update_count
    if total_break_time:
        values["total_break_time"] = CheckinSession.total_break_time + total_break_time
    if last_work_status is not None:
        values["last_work_status"] = last_work_status

    db.execute(
        update(CheckinSession)
        .where(CheckinSession.session_id == session_id)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
