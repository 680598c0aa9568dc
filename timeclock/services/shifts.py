from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from timeclock.models import PunchKind
from timeclock.services.normalizer import PunchEvent, day_window, local_date_of, normalize_ts

_ONE_MS = timedelta(milliseconds=1)


class ShiftStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    ON_BREAK = "on_break"
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


class IssueCode(str, enum.Enum):
    MULTIPLE_CLOCK_INS = "MULTIPLE_CLOCK_INS"
    BREAK_START_WITHOUT_SHIFT = "BREAK_START_WITHOUT_SHIFT"
    NESTED_BREAK_START = "NESTED_BREAK_START"
    BREAK_END_BEFORE_START = "BREAK_END_BEFORE_START"
    BREAK_END_WITHOUT_START = "BREAK_END_WITHOUT_START"
    CLOCKED_OUT_ON_BREAK = "CLOCKED_OUT_ON_BREAK"
    CLOCK_OUT_WITHOUT_CLOCK_IN = "CLOCK_OUT_WITHOUT_CLOCK_IN"
    CLOCK_OUT_BEFORE_CLOCK_IN = "CLOCK_OUT_BEFORE_CLOCK_IN"
    MISSING_CLOCK_OUT = "MISSING_CLOCK_OUT"
    MISSING_CLOCK_OUT_ON_BREAK = "MISSING_CLOCK_OUT_ON_BREAK"
    OVERLAPPING_BREAKS = "OVERLAPPING_BREAKS"
    OUT_OF_ORDER = "OUT_OF_ORDER"


ISSUE_MESSAGES: dict[IssueCode, str] = {
    IssueCode.MULTIPLE_CLOCK_INS: "multiple clock-ins",
    IssueCode.BREAK_START_WITHOUT_SHIFT: "break start without active shift",
    IssueCode.NESTED_BREAK_START: "nested break start",
    IssueCode.BREAK_END_BEFORE_START: "break end before break start",
    IssueCode.BREAK_END_WITHOUT_START: "break end without matching break start",
    IssueCode.CLOCKED_OUT_ON_BREAK: "clocked out while on break",
    IssueCode.CLOCK_OUT_WITHOUT_CLOCK_IN: "clock-out without clock-in",
    IssueCode.CLOCK_OUT_BEFORE_CLOCK_IN: "clock-out before clock-in",
    IssueCode.MISSING_CLOCK_OUT: "missing clock-out",
    IssueCode.MISSING_CLOCK_OUT_ON_BREAK: "missing clock-out (on break)",
    IssueCode.OVERLAPPING_BREAKS: "overlapping breaks",
    IssueCode.OUT_OF_ORDER: "out-of-order timestamps",
}


class _ScanState(enum.Enum):
    IDLE = "idle"
    WORKING = "working"
    ON_BREAK = "on_break"


@dataclass(frozen=True)
class BreakInterval:
    start: datetime
    end: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def duration_ms(self, open_end: datetime) -> int:
        end = self.end if self.end is not None else open_end
        return max(0, (end - self.start) // _ONE_MS)


@dataclass(frozen=True)
class ShiftIssue:
    code: IssueCode
    event_id: str | None = None
    timestamp: datetime | None = None
    local_time: str | None = None

    @property
    def message(self) -> str:
        return ISSUE_MESSAGES[self.code]

    def describe(self) -> str:
        if self.local_time:
            return f"{self.message} at {self.local_time}"
        return self.message


@dataclass(frozen=True)
class ReconstructedShift:
    worker_id: str
    date: date
    clock_in: datetime | None
    clock_out: datetime | None
    breaks: tuple[BreakInterval, ...]
    total_worked_ms: int
    break_time_ms: int
    net_worked_ms: int
    status: ShiftStatus
    issues: tuple[ShiftIssue, ...] = ()
    events: tuple[PunchEvent, ...] = ()

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    @property
    def issue_description(self) -> str | None:
        if not self.issues:
            return None
        parts: list[str] = []
        for issue in self.issues:
            text = issue.describe()
            if text not in parts:
                parts.append(text)
        return "; ".join(parts)


class _ShiftScan:
    """Left-to-right pairing of one worker-day's punches."""

    def __init__(self, tz: ZoneInfo):
        self.tz = tz
        self.state = _ScanState.IDLE
        self.clock_in: datetime | None = None
        self.clock_out: datetime | None = None
        self.open_break_start: datetime | None = None
        self.breaks: list[BreakInterval] = []
        self.issues: list[ShiftIssue] = []

    def flag(self, code: IssueCode, event: PunchEvent | None = None) -> None:
        if event is None:
            self.issues.append(ShiftIssue(code=code))
            return
        self.issues.append(
            ShiftIssue(
                code=code,
                event_id=event.id,
                timestamp=event.timestamp,
                local_time=event.timestamp.astimezone(self.tz).strftime("%H:%M"),
            )
        )

    def feed(self, event: PunchEvent) -> None:
        ts = event.timestamp
        kind = event.kind

        if kind is PunchKind.CLOCK_IN:
            if self.state is not _ScanState.IDLE:
                self.flag(IssueCode.MULTIPLE_CLOCK_INS, event)
                return
            if self.clock_in is None:
                self.clock_in = ts
            else:
                # First clock-in stands; the next clock-out closes the shift.
                self.flag(IssueCode.MULTIPLE_CLOCK_INS, event)
                self.clock_out = None
            self.state = _ScanState.WORKING
            return

        if kind is PunchKind.BREAK_START:
            if self.state is _ScanState.WORKING:
                self.open_break_start = ts
                self.state = _ScanState.ON_BREAK
            elif self.state is _ScanState.ON_BREAK:
                self.flag(IssueCode.NESTED_BREAK_START, event)
            else:
                self.flag(IssueCode.BREAK_START_WITHOUT_SHIFT, event)
            return

        if kind is PunchKind.BREAK_END:
            if self.state is not _ScanState.ON_BREAK:
                self.flag(IssueCode.BREAK_END_WITHOUT_START, event)
                return
            self._close_break(ts, event)
            self.state = _ScanState.WORKING
            return

        if kind is PunchKind.CLOCK_OUT:
            if self.state is _ScanState.IDLE:
                self.flag(IssueCode.CLOCK_OUT_WITHOUT_CLOCK_IN, event)
                return
            if self.state is _ScanState.ON_BREAK:
                self.flag(IssueCode.CLOCKED_OUT_ON_BREAK, event)
                self._close_break(ts, event)
            self.clock_out = ts
            self.state = _ScanState.IDLE

    def _close_break(self, end: datetime, event: PunchEvent) -> None:
        start = self.open_break_start
        if start is None:
            return
        if end < start:
            self.flag(IssueCode.BREAK_END_BEFORE_START, event)
            end = start
        self.breaks.append(BreakInterval(start=start, end=end))
        self.open_break_start = None


def _merge_breaks(breaks: list[BreakInterval]) -> tuple[list[BreakInterval], bool]:
    merged: list[BreakInterval] = []
    overlapped = False
    for item in sorted(breaks, key=lambda b: (b.start, b.end is None, b.end or b.start)):
        if merged:
            previous = merged[-1]
            if previous.end is None or item.start < previous.end:
                overlapped = True
                if previous.end is None or item.end is None:
                    end = None
                else:
                    end = max(previous.end, item.end)
                merged[-1] = BreakInterval(start=previous.start, end=end)
                continue
        merged.append(item)
    return merged, overlapped


def reconstruct_shift(
    events: Iterable[PunchEvent],
    *,
    worker_id: str,
    day: date,
    tz: ZoneInfo,
    reference_now: datetime,
) -> ReconstructedShift:
    """Rebuild one worker's shift for one calendar day.

    ``events`` should already be ordered by ``normalize_events``; anything that
    does not fit the clock-in / break / clock-out pattern is kept as an issue
    instead of raising. Open intervals run to ``reference_now`` when ``day`` is
    today in ``tz`` and to the end of the day otherwise.
    """
    ordered = tuple(events)
    reference_now = normalize_ts(reference_now)
    _, window_end = day_window(day, tz)
    is_today = local_date_of(reference_now, tz) == day
    open_end = reference_now if is_today else window_end

    scan = _ShiftScan(tz)
    latest_ts: datetime | None = None
    for event in ordered:
        if latest_ts is not None and event.timestamp < latest_ts:
            scan.flag(IssueCode.OUT_OF_ORDER, event)
        else:
            latest_ts = event.timestamp
        scan.feed(event)

    status: ShiftStatus
    if scan.state is _ScanState.WORKING:
        if is_today:
            status = ShiftStatus.IN_PROGRESS
        else:
            status = ShiftStatus.INCOMPLETE
            scan.flag(IssueCode.MISSING_CLOCK_OUT)
    elif scan.state is _ScanState.ON_BREAK:
        if scan.open_break_start is not None:
            scan.breaks.append(BreakInterval(start=scan.open_break_start, end=None))
        if is_today:
            status = ShiftStatus.ON_BREAK
        else:
            status = ShiftStatus.INCOMPLETE
            scan.flag(IssueCode.MISSING_CLOCK_OUT_ON_BREAK)
    elif scan.clock_in is not None and scan.clock_out is not None:
        status = ShiftStatus.COMPLETE
    else:
        status = ShiftStatus.INCOMPLETE

    breaks, overlapped = _merge_breaks(scan.breaks)
    if overlapped:
        scan.flag(IssueCode.OVERLAPPING_BREAKS)

    total_worked_ms = 0
    if scan.clock_in is not None:
        shift_end = scan.clock_out if scan.clock_out is not None else open_end
        if scan.clock_out is not None and scan.clock_out < scan.clock_in:
            scan.flag(IssueCode.CLOCK_OUT_BEFORE_CLOCK_IN)
        total_worked_ms = max(0, (shift_end - scan.clock_in) // _ONE_MS)

    break_time_ms = sum(item.duration_ms(open_end) for item in breaks)
    net_worked_ms = max(0, total_worked_ms - break_time_ms)

    return ReconstructedShift(
        worker_id=worker_id,
        date=day,
        clock_in=scan.clock_in,
        clock_out=scan.clock_out,
        breaks=tuple(breaks),
        total_worked_ms=total_worked_ms,
        break_time_ms=break_time_ms,
        net_worked_ms=net_worked_ms,
        status=status,
        issues=tuple(scan.issues),
        events=ordered,
    )
