"""Schemas for the live presence projection and session sub-ledgers."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from presence.models.enums import (
    ACTIVE_PRESENCE,
    BreakStatus,
    BreakType,
    PresenceStatus,
    SessionStatus,
)
from presence.schemas.base import ORMModel


class CurrentBreak(ORMModel):
    id: str
    type: BreakType
    start_time: datetime


class CurrentSessionProjection(ORMModel):
    checkin_time: datetime
    total_break_time: int = Field(default=0, ge=0)
    current_break: Optional[CurrentBreak] = None
    current_work_status: Optional[str] = None
    status_update_count: int = Field(default=0, ge=0)


class UserStatusRead(ORMModel):
    user_id: str
    username: str
    status: PresenceStatus
    current_session_id: Optional[str] = None
    last_checkin: Optional[datetime] = None
    last_checkout: Optional[datetime] = None
    last_activity: datetime
    timezone: Optional[str] = None
    current_session: Optional[CurrentSessionProjection] = None

    @model_validator(mode="after")
    def check_projection(self) -> "UserStatusRead":
        active = self.status in ACTIVE_PRESENCE
        if active != (self.current_session_id is not None):
            raise ValueError("current_session_id must be set exactly when checked in or on break")
        if active != (self.current_session is not None):
            raise ValueError("current_session must be set exactly when checked in or on break")
        on_break = self.status == PresenceStatus.ON_BREAK
        has_break = self.current_session is not None and self.current_session.current_break is not None
        if on_break != has_break:
            raise ValueError("current_break must be set exactly when on break")
        return self


class SessionNotes(ORMModel):
    checkin: Optional[str] = None
    checkout: Optional[str] = None


class CheckinSessionRead(ORMModel):
    session_id: str
    user_id: str
    username: str
    date: str
    checkin_time: datetime
    checkout_time: Optional[datetime] = None
    status: SessionStatus
    total_break_time: int = 0
    total_work_time: Optional[int] = None
    notes: Optional[SessionNotes] = None
    timezone: str
    break_count: int = 0
    status_update_count: int = 0
    last_work_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BreakRecordRead(ORMModel):
    break_id: str
    session_id: str
    user_id: str
    type: BreakType
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    expected_duration: Optional[int] = None
    notes: Optional[str] = None
    status: BreakStatus
    created_at: datetime


class StatusUpdateRead(ORMModel):
    update_id: str
    session_id: str
    user_id: str
    username: str
    status: str
    timestamp: datetime
    previous_status: Optional[str] = None


class UserCurrentStateRead(ORMModel):
    status: UserStatusRead
    current_session: Optional[CheckinSessionRead] = None
    active_break: Optional[BreakRecordRead] = None
    recent_status_updates: List[StatusUpdateRead] = Field(default_factory=list)


class BreakVariance(ORMModel):
    expected_minutes: Optional[int] = None
    difference_minutes: Optional[int] = None
    flag: Optional[str] = None


class BreakEndResult(ORMModel):
    break_record: BreakRecordRead
    variance: BreakVariance


class CheckinRequest(ORMModel):
    username: str = Field(min_length=1, max_length=255)
    notes: Optional[str] = None


class CheckoutRequest(ORMModel):
    notes: Optional[str] = None


class BreakStartRequest(ORMModel):
    type: BreakType
    notes: Optional[str] = None


class BreakEndRequest(ORMModel):
    notes: Optional[str] = None


class StatusUpdateCreate(ORMModel):
    text: str = Field(min_length=1)
    username: Optional[str] = None
