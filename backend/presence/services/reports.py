from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from presence.models.enums import PresenceStatus, SessionStatus
from presence.schemas.reports import (
    CompletedSessionRow,
    HistoryDay,
    HistoryReport,
    HistorySessionRow,
    HistorySummary,
    OnBreakUserRow,
    ReportSummary,
    TeamReport,
    WorkingUserRow,
)
from presence.services.break_types import get_break_config
from presence.services.session_store import read_projection
from presence.services.sessions import get_active_users, get_sessions_by_date, get_user_session_history
from presence.services.timeutils import date_string, elapsed_minutes, format_duration, round_half_up, to_utc, utcnow

DEFAULT_HISTORY_DAYS = 7


def _average(total: int, count: int) -> int:
    return round_half_up(total / count) if count else 0


def build_team_report(db: Session, *, report_date: Optional[str] = None, now: Optional[datetime] = None) -> TeamReport:
    timestamp = now or utcnow()
    day = report_date or date_string(timestamp)

    active_users = get_active_users(db)
    day_sessions = get_sessions_by_date(db, day)

    working: List[WorkingUserRow] = []
    on_break: List[OnBreakUserRow] = []
    for user in active_users:
        projection = read_projection(user)
        if not projection:
            continue
        if user.status == PresenceStatus.CHECKED_IN:
            working.append(
                WorkingUserRow(
                    user_id=user.user_id,
                    username=user.username,
                    checkin_time=projection.checkin_time,
                    elapsed=format_duration(projection.checkin_time, timestamp),
                    timezone=user.timezone,
                    total_break_time=projection.total_break_time,
                    status_update_count=projection.status_update_count,
                    current_work_status=projection.current_work_status,
                )
            )
        elif user.status == PresenceStatus.ON_BREAK and projection.current_break:
            config = get_break_config(projection.current_break.type)
            on_break.append(
                OnBreakUserRow(
                    user_id=user.user_id,
                    username=user.username,
                    break_type=projection.current_break.type,
                    break_name=config.display_name,
                    break_emoji=config.emoji,
                    break_minutes=elapsed_minutes(projection.current_break.start_time, timestamp),
                    current_work_status=projection.current_work_status,
                )
            )

    completed = [
        CompletedSessionRow(
            user_id=s.user_id,
            username=s.username,
            session_id=s.session_id,
            duration=format_duration(s.checkin_time, s.checkout_time),
            total_work_time=s.total_work_time,
            total_break_time=s.total_break_time,
            status_update_count=s.status_update_count,
        )
        for s in day_sessions
        if s.status == SessionStatus.COMPLETED and s.checkout_time
    ]

    total_sessions = len(day_sessions)
    total_work = sum(s.total_work_time or 0 for s in day_sessions)
    total_break = sum(s.total_break_time or 0 for s in day_sessions)
    summary = ReportSummary(
        total_sessions=total_sessions,
        currently_active=len(active_users),
        total_work_minutes=total_work,
        total_break_minutes=total_break,
        average_work_minutes=_average(total_work, total_sessions),
        average_break_minutes=_average(total_break, total_sessions),
    )
    return TeamReport(date=day, working=working, on_break=on_break, completed=completed, summary=summary)


def build_history_report(
    db: Session,
    *,
    user_id: str,
    days_back: int = DEFAULT_HISTORY_DAYS,
    now: Optional[datetime] = None,
) -> HistoryReport:
    timestamp = to_utc(now or utcnow())
    days_back = days_back if days_back and days_back > 0 else DEFAULT_HISTORY_DAYS
    start = timestamp - timedelta(days=days_back)

    sessions = get_user_session_history(
        db,
        user_id=user_id,
        start_date=start.date(),
        end_date=timestamp.date(),
    )

    grouped: Dict[str, List[HistorySessionRow]] = {}
    for session in sessions:
        grouped.setdefault(session.date, []).append(
            HistorySessionRow(
                session_id=session.session_id,
                status=session.status,
                checkin_time=session.checkin_time,
                checkout_time=session.checkout_time,
                timezone=session.timezone,
                duration=(
                    format_duration(session.checkin_time, session.checkout_time)
                    if session.checkout_time
                    else None
                ),
                total_work_time=session.total_work_time,
                total_break_time=session.total_break_time,
                last_work_status=session.last_work_status,
            )
        )
    days = [HistoryDay(date=day, sessions=rows) for day, rows in sorted(grouped.items(), reverse=True)]

    completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
    total_work = sum(s.total_work_time or 0 for s in completed)
    total_break = sum(s.total_break_time or 0 for s in completed)
    summary = HistorySummary(
        total_sessions=len(sessions),
        completed_sessions=len(completed),
        total_work_minutes=total_work,
        total_break_minutes=total_break,
        average_work_minutes=_average(total_work, len(completed)),
    )
    return HistoryReport(
        user_id=user_id,
        days_back=days_back,
        start_date=date_string(start),
        end_date=date_string(timestamp),
        days=days,
        summary=summary,
    )
