from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from timeclock.models import PunchKind
from timeclock.services.shifts import IssueCode, ShiftStatus


class BreakIntervalRead(BaseModel):
    start: datetime
    end: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ShiftIssueRead(BaseModel):
    code: IssueCode
    message: str
    event_id: str | None = None
    timestamp: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PunchEventRead(BaseModel):
    id: str
    worker_id: str
    kind: PunchKind
    timestamp: datetime
    note: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ReconstructedShiftRead(BaseModel):
    worker_id: str
    date: date
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    breaks: list[BreakIntervalRead] = Field(default_factory=list)
    total_worked_ms: int
    break_time_ms: int
    net_worked_ms: int
    status: ShiftStatus
    issues: list[ShiftIssueRead] = Field(default_factory=list)
    events: list[PunchEventRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class DailySummaryRead(BaseModel):
    worker_id: str
    worker_name: str
    date: date
    shift: ReconstructedShiftRead
    total_hours: float
    break_hours: float
    net_hours: float
    entry_count: int
    has_issues: bool
    issue_description: str | None = None
    clock_in_label: str | None = None
    clock_out_label: str | None = None
    net_duration_label: str

    model_config = ConfigDict(from_attributes=True)


class ReportTotalsRead(BaseModel):
    row_count: int
    issue_count: int
    total_hours: float
    break_hours: float
    net_hours: float

    model_config = ConfigDict(from_attributes=True)


class RejectedPunchRowRead(BaseModel):
    row_id: str | None = None
    reason: str


class TimeReportResponse(BaseModel):
    start_date: date
    end_date: date
    worker_id: str | None = None
    timezone: str
    generated_at_utc: datetime
    rows: list[DailySummaryRead]
    totals: ReportTotalsRead
    rejected_rows: list[RejectedPunchRowRead] = Field(default_factory=list)


class ClockActionCheckRequest(BaseModel):
    worker_id: str = Field(min_length=1, max_length=64)
    action: PunchKind


class ClockActionCheckResponse(BaseModel):
    worker_id: str
    action: PunchKind
    valid: bool
    reason: str | None = None
    current_status: ShiftStatus | None = None


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    app_name: str
    reporting_timezone: str
