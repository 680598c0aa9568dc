from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from timeclock.models import Barber, TimeEntry
from timeclock.services.normalizer import date_range_window, day_window, local_date_of


def _entry_to_row(entry: TimeEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "barber_id": entry.barber_id,
        "entry_type": entry.entry_type,
        "timestamp": entry.timestamp,
        "note": entry.note,
    }


def fetch_time_entry_rows(
    db: Session,
    *,
    start_date: date,
    end_date: date,
    tz: ZoneInfo,
    worker_id: str | None = None,
) -> list[dict[str, Any]]:
    start_utc, end_utc = date_range_window(start_date, end_date, tz)
    stmt = (
        select(TimeEntry)
        .where(
            TimeEntry.timestamp >= start_utc,
            TimeEntry.timestamp < end_utc,
        )
        .order_by(TimeEntry.barber_id.asc(), TimeEntry.timestamp.asc(), TimeEntry.id.asc())
    )
    if worker_id is not None:
        stmt = stmt.where(TimeEntry.barber_id == worker_id)
    return [_entry_to_row(entry) for entry in db.scalars(stmt).all()]


def fetch_today_rows(
    db: Session,
    *,
    worker_id: str,
    tz: ZoneInfo,
    reference_now: datetime,
) -> list[dict[str, Any]]:
    start_utc, end_utc = day_window(local_date_of(reference_now, tz), tz)
    stmt = (
        select(TimeEntry)
        .where(
            TimeEntry.barber_id == worker_id,
            TimeEntry.timestamp >= start_utc,
            TimeEntry.timestamp < end_utc,
        )
        .order_by(TimeEntry.timestamp.asc(), TimeEntry.id.asc())
    )
    return [_entry_to_row(entry) for entry in db.scalars(stmt).all()]


def fetch_worker_names(db: Session, worker_ids: Iterable[str]) -> dict[str, str]:
    ids = sorted(set(worker_ids))
    if not ids:
        return {}
    rows = db.scalars(select(Barber).where(Barber.id.in_(ids))).all()
    return {barber.id: barber.full_name for barber in rows}
