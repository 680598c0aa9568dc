import logging
from datetime import date, datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from timeclock.db import get_db
from timeclock.errors import DuplicateEventError
from timeclock.schemas import ClockActionCheckRequest, ClockActionCheckResponse, TimeReportResponse
from timeclock.services.clock_actions import validate_clock_action
from timeclock.services.exports import build_summaries_csv, build_summaries_xlsx_bytes
from timeclock.services.normalizer import local_date_of, normalize_events, parse_punch_rows
from timeclock.services.punch_store import fetch_today_rows
from timeclock.services.shifts import reconstruct_shift
from timeclock.services.time_report import (
    build_time_report,
    duplicate_event_error,
    load_daily_summaries,
    reporting_timezone,
)
from timeclock.settings import get_settings

router = APIRouter(tags=["time-tracking"])
logger = logging.getLogger("timeclock.exports")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _export_filename(start_date: date, end_date: date, extension: str) -> str:
    return f"barber-time-{start_date.isoformat()}-{end_date.isoformat()}.{extension}"


@router.get("/api/admin/time-tracking/daily-summaries", response_model=TimeReportResponse)
def get_daily_summaries(
    start_date: date = Query(...),
    end_date: date = Query(...),
    worker_id: str | None = Query(default=None, min_length=1, max_length=64),
    language: Literal["en", "es"] | None = Query(default=None),
    db: Session = Depends(get_db),
) -> TimeReportResponse:
    return build_time_report(
        db,
        start_date=start_date,
        end_date=end_date,
        worker_id=worker_id,
        reference_now=datetime.now(timezone.utc),
        language=language,
    )


@router.get("/api/admin/time-tracking/export.csv")
def export_daily_summaries_csv(
    start_date: date = Query(...),
    end_date: date = Query(...),
    worker_id: str | None = Query(default=None, min_length=1, max_length=64),
    language: Literal["en", "es"] | None = Query(default=None),
    db: Session = Depends(get_db),
) -> Response:
    summaries, _rejected = load_daily_summaries(
        db,
        start_date=start_date,
        end_date=end_date,
        worker_id=worker_id,
        reference_now=datetime.now(timezone.utc),
    )
    payload = build_summaries_csv(
        summaries,
        tz=reporting_timezone(),
        language=language or get_settings().default_language,
    )
    logger.info(
        "time_report_export",
        extra={"format": "csv", "row_count": len(summaries), "worker_id": worker_id},
    )
    return Response(
        content=payload,
        media_type=CSV_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{_export_filename(start_date, end_date, "csv")}"',
        },
    )


@router.get("/api/admin/time-tracking/export.xlsx")
def export_daily_summaries_xlsx(
    start_date: date = Query(...),
    end_date: date = Query(...),
    worker_id: str | None = Query(default=None, min_length=1, max_length=64),
    mode: Literal["consolidated", "worker_sheets"] = Query(default="consolidated"),
    language: Literal["en", "es"] | None = Query(default=None),
    db: Session = Depends(get_db),
) -> Response:
    now_utc = datetime.now(timezone.utc)
    summaries, _rejected = load_daily_summaries(
        db,
        start_date=start_date,
        end_date=end_date,
        worker_id=worker_id,
        reference_now=now_utc,
    )
    payload = build_summaries_xlsx_bytes(
        summaries,
        tz=reporting_timezone(),
        range_label=f"{start_date.isoformat()} - {end_date.isoformat()}",
        generated_at_utc=now_utc,
        language=language or get_settings().default_language,
        mode=mode,
    )
    logger.info(
        "time_report_export",
        extra={"format": "xlsx", "mode": mode, "row_count": len(summaries), "worker_id": worker_id},
    )
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{_export_filename(start_date, end_date, "xlsx")}"',
        },
    )


@router.post("/api/time-tracking/validate-action", response_model=ClockActionCheckResponse)
def check_clock_action(
    payload: ClockActionCheckRequest,
    db: Session = Depends(get_db),
) -> ClockActionCheckResponse:
    now_utc = datetime.now(timezone.utc)
    tz = reporting_timezone()
    rows = fetch_today_rows(db, worker_id=payload.worker_id, tz=tz, reference_now=now_utc)
    events, _rejected = parse_punch_rows(rows)
    today = local_date_of(now_utc, tz)
    try:
        grouped = normalize_events(
            events,
            tz=tz,
            worker_id=payload.worker_id,
            on_duplicate=get_settings().duplicate_event_policy,
        )
    except DuplicateEventError as exc:
        raise duplicate_event_error(exc) from exc
    today_events = grouped.get((payload.worker_id, today), [])

    check = validate_clock_action(today_events, payload.action)
    current_status = None
    if today_events:
        shift = reconstruct_shift(
            today_events,
            worker_id=payload.worker_id,
            day=today,
            tz=tz,
            reference_now=now_utc,
        )
        current_status = shift.status

    return ClockActionCheckResponse(
        worker_id=payload.worker_id,
        action=payload.action,
        valid=check.valid,
        reason=check.reason,
        current_status=current_status,
    )
