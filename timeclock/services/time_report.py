from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from timeclock.errors import ApiError, DuplicateEventError
from timeclock.schemas import (
    DailySummaryRead,
    RejectedPunchRowRead,
    ReconstructedShiftRead,
    ReportTotalsRead,
    TimeReportResponse,
)
from timeclock.services.daily_summary import DailySummary, summarize_punches, summarize_totals
from timeclock.services.formatting import Language, format_clock_time, format_duration
from timeclock.services.normalizer import parse_punch_rows
from timeclock.services.punch_store import fetch_time_entry_rows, fetch_worker_names
from timeclock.settings import get_settings

logger = logging.getLogger("timeclock.time_report")

FALLBACK_TIMEZONE = "UTC"


@lru_cache
def reporting_timezone() -> ZoneInfo:
    raw_name = (get_settings().reporting_timezone or "").strip() or FALLBACK_TIMEZONE
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("reporting_timezone_invalid", extra={"timezone": raw_name})
        return ZoneInfo(FALLBACK_TIMEZONE)


def _rejected_row_id(row: object) -> str | None:
    if isinstance(row, Mapping) and row.get("id") is not None:
        return str(row["id"])
    return None


def validate_report_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="start_date must be on or before end_date.",
        )
    max_days = max(1, get_settings().max_report_days)
    if (end_date - start_date).days + 1 > max_days:
        raise ApiError(
            status_code=422,
            code="DATE_RANGE_TOO_LARGE",
            message=f"Date range cannot exceed {max_days} days.",
        )


def duplicate_event_error(exc: DuplicateEventError) -> ApiError:
    logger.error(
        "time_report_duplicate_event",
        extra={"event_id": exc.event_id, "worker_id": exc.worker_id},
    )
    return ApiError(
        status_code=409,
        code="DUPLICATE_PUNCH_EVENT",
        message=f"Punch event {exc.event_id} appears more than once.",
    )


def to_summary_read(summary: DailySummary, *, tz: ZoneInfo, language: Language) -> DailySummaryRead:
    shift = summary.shift
    return DailySummaryRead(
        worker_id=summary.worker_id,
        worker_name=summary.worker_name,
        date=summary.date,
        shift=ReconstructedShiftRead.model_validate(shift),
        total_hours=summary.total_hours,
        break_hours=summary.break_hours,
        net_hours=summary.net_hours,
        entry_count=summary.entry_count,
        has_issues=summary.has_issues,
        issue_description=summary.issue_description,
        clock_in_label=format_clock_time(shift.clock_in, tz=tz, language=language) if shift.clock_in else None,
        clock_out_label=format_clock_time(shift.clock_out, tz=tz, language=language) if shift.clock_out else None,
        net_duration_label=format_duration(shift.net_worked_ms),
    )


def load_daily_summaries(
    db: Session,
    *,
    start_date: date,
    end_date: date,
    worker_id: str | None,
    reference_now: datetime,
) -> tuple[list[DailySummary], list[RejectedPunchRowRead]]:
    validate_report_range(start_date, end_date)
    settings = get_settings()
    tz = reporting_timezone()

    rows = fetch_time_entry_rows(db, start_date=start_date, end_date=end_date, tz=tz, worker_id=worker_id)
    events, rejected = parse_punch_rows(rows)
    worker_names = fetch_worker_names(db, (event.worker_id for event in events))

    try:
        summaries = summarize_punches(
            events,
            worker_names,
            tz=tz,
            reference_now=reference_now,
            start_date=start_date,
            end_date=end_date,
            worker_id=worker_id,
            on_duplicate=settings.duplicate_event_policy,
        )
    except DuplicateEventError as exc:
        raise duplicate_event_error(exc) from exc

    rejected_rows = [
        RejectedPunchRowRead(
            row_id=_rejected_row_id(item.row),
            reason=item.reason,
        )
        for item in rejected
    ]
    return summaries, rejected_rows


def build_time_report(
    db: Session,
    *,
    start_date: date,
    end_date: date,
    worker_id: str | None = None,
    reference_now: datetime | None = None,
    language: Language | None = None,
) -> TimeReportResponse:
    now_utc = reference_now or datetime.now(timezone.utc)
    tz = reporting_timezone()
    lang: Language = language or get_settings().default_language

    summaries, rejected_rows = load_daily_summaries(
        db,
        start_date=start_date,
        end_date=end_date,
        worker_id=worker_id,
        reference_now=now_utc,
    )
    totals = summarize_totals(summaries)

    logger.info(
        "time_report_built",
        extra={
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "worker_id": worker_id,
            "row_count": totals.row_count,
            "issue_count": totals.issue_count,
            "rejected_rows": len(rejected_rows),
        },
    )

    return TimeReportResponse(
        start_date=start_date,
        end_date=end_date,
        worker_id=worker_id,
        timezone=tz.key,
        generated_at_utc=now_utc,
        rows=[to_summary_read(summary, tz=tz, language=lang) for summary in summaries],
        totals=ReportTotalsRead.model_validate(totals),
        rejected_rows=rejected_rows,
    )
