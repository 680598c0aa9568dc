from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from timeclock.services.normalizer import DuplicatePolicy, PunchEvent, normalize_events
from timeclock.services.shifts import ReconstructedShift, reconstruct_shift

MS_PER_HOUR = 1000 * 60 * 60

WorkerNames = Mapping[str, str] | Callable[[str], str | None]


@dataclass(frozen=True)
class DailySummary:
    worker_id: str
    worker_name: str
    date: date
    shift: ReconstructedShift
    total_hours: float
    break_hours: float
    net_hours: float
    entry_count: int
    has_issues: bool
    issue_description: str | None = None


@dataclass(frozen=True)
class ReportTotals:
    row_count: int
    issue_count: int
    total_hours: float
    break_hours: float
    net_hours: float


def ms_to_hours(ms: int) -> float:
    return ms / MS_PER_HOUR


def resolve_worker_name(worker_names: WorkerNames, worker_id: str) -> str:
    if callable(worker_names):
        name = worker_names(worker_id)
    else:
        name = worker_names.get(worker_id)
    if isinstance(name, str) and name.strip():
        return name
    return str(worker_id)


def build_daily_summaries(
    shifts: Iterable[ReconstructedShift],
    worker_names: WorkerNames,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    worker_id: str | None = None,
) -> list[DailySummary]:
    summaries: list[DailySummary] = []
    for shift in shifts:
        if worker_id is not None and shift.worker_id != worker_id:
            continue
        if start_date is not None and shift.date < start_date:
            continue
        if end_date is not None and shift.date > end_date:
            continue
        summaries.append(
            DailySummary(
                worker_id=shift.worker_id,
                worker_name=resolve_worker_name(worker_names, shift.worker_id),
                date=shift.date,
                shift=shift,
                total_hours=ms_to_hours(shift.total_worked_ms),
                break_hours=ms_to_hours(shift.break_time_ms),
                net_hours=ms_to_hours(shift.net_worked_ms),
                entry_count=len(shift.events),
                has_issues=shift.has_issues,
                issue_description=shift.issue_description,
            )
        )
    summaries.sort(key=lambda item: (item.date, item.worker_name, item.worker_id))
    return summaries


def summarize_punches(
    events: Iterable[PunchEvent],
    worker_names: WorkerNames,
    *,
    tz: ZoneInfo,
    reference_now: datetime,
    start_date: date | None = None,
    end_date: date | None = None,
    worker_id: str | None = None,
    on_duplicate: DuplicatePolicy = "drop",
) -> list[DailySummary]:
    """Normalize, reconstruct and aggregate punches into sorted daily rows."""
    grouped = normalize_events(
        events,
        tz=tz,
        start_date=start_date,
        end_date=end_date,
        worker_id=worker_id,
        on_duplicate=on_duplicate,
    )
    shifts = [
        reconstruct_shift(
            day_events,
            worker_id=group_worker_id,
            day=day,
            tz=tz,
            reference_now=reference_now,
        )
        for (group_worker_id, day), day_events in grouped.items()
    ]
    return build_daily_summaries(
        shifts,
        worker_names,
        start_date=start_date,
        end_date=end_date,
        worker_id=worker_id,
    )


def summarize_totals(summaries: Iterable[DailySummary]) -> ReportTotals:
    rows = list(summaries)
    return ReportTotals(
        row_count=len(rows),
        issue_count=sum(1 for row in rows if row.has_issues),
        total_hours=ms_to_hours(sum(row.shift.total_worked_ms for row in rows)),
        break_hours=ms_to_hours(sum(row.shift.break_time_ms for row in rows)),
        net_hours=ms_to_hours(sum(row.shift.net_worked_ms for row in rows)),
    )
