from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from presence.models.enums import BreakType, SessionStatus
from presence.schemas.base import ORMModel


class WorkingUserRow(ORMModel):
    user_id: str
    username: str
    checkin_time: datetime
    elapsed: str
    timezone: Optional[str] = None
    total_break_time: int = 0
    status_update_count: int = 0
    current_work_status: Optional[str] = None


class OnBreakUserRow(ORMModel):
    user_id: str
    username: str
    break_type: BreakType
    break_name: str
    break_emoji: str
    break_minutes: int = 0
    current_work_status: Optional[str] = None


class CompletedSessionRow(ORMModel):
    user_id: str
    username: str
    session_id: str
    duration: str
    total_work_time: Optional[int] = None
    total_break_time: int = 0
    status_update_count: int = 0


class ReportSummary(ORMModel):
    total_sessions: int = 0
    currently_active: int = 0
    total_work_minutes: int = 0
    total_break_minutes: int = 0
    average_work_minutes: int = 0
    average_break_minutes: int = 0


class TeamReport(ORMModel):
    date: str
    working: List[WorkingUserRow] = Field(default_factory=list)
    on_break: List[OnBreakUserRow] = Field(default_factory=list)
    completed: List[CompletedSessionRow] = Field(default_factory=list)
    summary: ReportSummary

    @property
    def is_empty(self) -> bool:
        return not self.working and not self.on_break and self.summary.total_sessions == 0


class HistorySessionRow(ORMModel):
    session_id: str
    status: SessionStatus
    checkin_time: datetime
    checkout_time: Optional[datetime] = None
    timezone: str
    duration: Optional[str] = None
    total_work_time: Optional[int] = None
    total_break_time: int = 0
    last_work_status: Optional[str] = None


class HistoryDay(ORMModel):
    date: str
    sessions: List[HistorySessionRow] = Field(default_factory=list)


class HistorySummary(ORMModel):
    total_sessions: int = 0
    completed_sessions: int = 0
    total_work_minutes: int = 0
    total_break_minutes: int = 0
    average_work_minutes: int = 0


class HistoryReport(ORMModel):
    user_id: str
    days_back: int
    start_date: str
    end_date: str
    days: List[HistoryDay] = Field(default_factory=list)
    summary: HistorySummary
