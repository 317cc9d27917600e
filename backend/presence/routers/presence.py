"""Presence router: check-in/out, breaks, status updates and reports.

Returns plain data only; chat formatting belongs to the command layer.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from presence.db.session import get_db
from presence.schemas.presence import (
    BreakEndRequest,
    BreakEndResult,
    BreakRecordRead,
    BreakStartRequest,
    BreakVariance,
    CheckinRequest,
    CheckinSessionRead,
    CheckoutRequest,
    StatusUpdateCreate,
    StatusUpdateRead,
    UserCurrentStateRead,
    UserStatusRead,
)
from presence.schemas.preferences import TimezoneUpdate, UserPreferencesRead, UserPreferencesUpdate
from presence.schemas.reports import HistoryReport, TeamReport
from presence.services import sessions as session_service
from presence.services.break_types import describe_variance
from presence.services.breaks import get_session_breaks
from presence.services.preferences import get_user_preferences, set_user_timezone, update_user_preferences
from presence.services.reports import DEFAULT_HISTORY_DAYS, build_history_report, build_team_report
from presence.services.status_updates import list_updates
from presence.services.timeutils import utcnow

router = APIRouter(prefix="/api/presence", tags=["presence"])


def _get_session_or_404(db: Session, session_id: str):
    session = session_service.get_session(db, session_id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


@router.post("/users/{user_id}/checkin", response_model=CheckinSessionRead, status_code=status.HTTP_201_CREATED)
def checkin(user_id: str, payload: CheckinRequest, db: Session = Depends(get_db)) -> CheckinSessionRead:
    session = session_service.check_in(db, user_id=user_id, username=payload.username, notes=payload.notes)
    db.commit()
    return CheckinSessionRead.model_validate(session)


@router.post("/users/{user_id}/checkout", response_model=CheckinSessionRead)
def checkout(user_id: str, payload: CheckoutRequest, db: Session = Depends(get_db)) -> CheckinSessionRead:
    session = session_service.check_out(db, user_id=user_id, notes=payload.notes)
    db.commit()
    return CheckinSessionRead.model_validate(session)


@router.post("/users/{user_id}/breaks/start", response_model=BreakRecordRead, status_code=status.HTTP_201_CREATED)
def break_start(user_id: str, payload: BreakStartRequest, db: Session = Depends(get_db)) -> BreakRecordRead:
    record = session_service.start_break(db, user_id=user_id, break_type=payload.type, notes=payload.notes)
    db.commit()
    return BreakRecordRead.model_validate(record)


@router.post("/users/{user_id}/breaks/end", response_model=BreakEndResult)
def break_end(user_id: str, payload: BreakEndRequest, db: Session = Depends(get_db)) -> BreakEndResult:
    record = session_service.end_break(db, user_id=user_id, notes=payload.notes)
    db.commit()
    return BreakEndResult(
        break_record=BreakRecordRead.model_validate(record),
        variance=BreakVariance(**describe_variance(record.type, record.duration)),
    )


@router.post("/users/{user_id}/status", response_model=StatusUpdateRead, status_code=status.HTTP_201_CREATED)
def status_update(user_id: str, payload: StatusUpdateCreate, db: Session = Depends(get_db)) -> StatusUpdateRead:
    update = session_service.post_status_update(
        db,
        user_id=user_id,
        text=payload.text.strip(),
        username=payload.username,
    )
    db.commit()
    return StatusUpdateRead.model_validate(update)


@router.get("/users/{user_id}/state", response_model=UserCurrentStateRead)
def current_state(user_id: str, db: Session = Depends(get_db)) -> UserCurrentStateRead:
    state = session_service.get_current_state(db, user_id)
    if not state:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No check-in records for this user")
    db.commit()
    return UserCurrentStateRead.model_validate(state)


@router.post("/users/{user_id}/rebuild", response_model=UserStatusRead)
def rebuild(user_id: str, db: Session = Depends(get_db)) -> UserStatusRead:
    user_status = session_service.rebuild_projection(db, user_id=user_id)
    if not user_status:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No check-in records for this user")
    db.commit()
    return UserStatusRead.model_validate(user_status)


@router.get("/users/{user_id}/sessions", response_model=List[CheckinSessionRead])
def session_history(
    user_id: str,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
) -> List[CheckinSessionRead]:
    end = end_date or utcnow().date()
    start = start_date or end - timedelta(days=DEFAULT_HISTORY_DAYS)
    sessions = session_service.get_user_session_history(db, user_id=user_id, start_date=start, end_date=end)
    return [CheckinSessionRead.model_validate(s) for s in sessions]


@router.get("/users/{user_id}/history", response_model=HistoryReport)
def history_report(
    user_id: str,
    days: int = Query(DEFAULT_HISTORY_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
) -> HistoryReport:
    return build_history_report(db, user_id=user_id, days_back=days)


@router.get("/users/{user_id}/preferences", response_model=UserPreferencesRead)
def read_preferences(user_id: str, db: Session = Depends(get_db)) -> UserPreferencesRead:
    prefs = get_user_preferences(db, user_id)
    if not prefs:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preferences not set")
    return UserPreferencesRead.model_validate(prefs)


@router.patch("/users/{user_id}/preferences", response_model=UserPreferencesRead)
def patch_preferences(
    user_id: str,
    payload: UserPreferencesUpdate,
    db: Session = Depends(get_db),
) -> UserPreferencesRead:
    if payload.timezone is not None:
        set_user_timezone(db, user_id=user_id, timezone=payload.timezone)
    prefs = update_user_preferences(
        db,
        user_id=user_id,
        default_break_durations=(
            payload.default_break_durations.model_dump() if payload.default_break_durations else None
        ),
        notifications=payload.notifications.model_dump() if payload.notifications else None,
    )
    db.commit()
    return UserPreferencesRead.model_validate(prefs)


@router.put("/users/{user_id}/timezone", response_model=UserPreferencesRead)
def put_timezone(user_id: str, payload: TimezoneUpdate, db: Session = Depends(get_db)) -> UserPreferencesRead:
    prefs = set_user_timezone(db, user_id=user_id, timezone=payload.timezone)
    db.commit()
    return UserPreferencesRead.model_validate(prefs)


@router.get("/sessions/{session_id}", response_model=CheckinSessionRead)
def read_session(session_id: str, db: Session = Depends(get_db)) -> CheckinSessionRead:
    return CheckinSessionRead.model_validate(_get_session_or_404(db, session_id))


@router.get("/sessions/{session_id}/breaks", response_model=List[BreakRecordRead])
def read_session_breaks(session_id: str, db: Session = Depends(get_db)) -> List[BreakRecordRead]:
    _get_session_or_404(db, session_id)
    return [BreakRecordRead.model_validate(b) for b in get_session_breaks(db, session_id)]


@router.get("/sessions/{session_id}/status-updates", response_model=List[StatusUpdateRead])
def read_session_updates(
    session_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[StatusUpdateRead]:
    _get_session_or_404(db, session_id)
    return [StatusUpdateRead.model_validate(u) for u in list_updates(db, session_id, limit=limit)]


@router.get("/sessions", response_model=List[CheckinSessionRead])
def sessions_by_date(
    day: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
) -> List[CheckinSessionRead]:
    target = (day or utcnow().date()).isoformat()
    return [CheckinSessionRead.model_validate(s) for s in session_service.get_sessions_by_date(db, target)]


@router.get("/active", response_model=List[UserStatusRead])
def active_users(db: Session = Depends(get_db)) -> List[UserStatusRead]:
    return [UserStatusRead.model_validate(u) for u in session_service.get_active_users(db)]


@router.get("/report", response_model=TeamReport)
def team_report(
    day: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
) -> TeamReport:
    return build_team_report(db, report_date=day.isoformat() if day else None)
