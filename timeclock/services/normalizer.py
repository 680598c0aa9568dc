from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Literal
from zoneinfo import ZoneInfo

from timeclock.errors import DuplicateEventError, InvalidPunchRowError
from timeclock.models import PunchKind

logger = logging.getLogger("timeclock.normalizer")

DuplicatePolicy = Literal["drop", "raise"]

# Same-instant tie-break: a shift opens before a break, and a break closes
# before the shift does.
KIND_RANK: dict[PunchKind, int] = {
    PunchKind.CLOCK_IN: 0,
    PunchKind.BREAK_START: 1,
    PunchKind.BREAK_END: 2,
    PunchKind.CLOCK_OUT: 3,
}

_WORKER_ID_KEYS = ("worker_id", "barber_id")
_KIND_KEYS = ("kind", "entry_type")


@dataclass(frozen=True)
class PunchEvent:
    id: str
    worker_id: str
    kind: PunchKind
    timestamp: datetime
    note: str | None = None


@dataclass(frozen=True)
class RejectedRow:
    row: Any
    reason: str


def normalize_ts(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date_of(ts: datetime, tz: ZoneInfo) -> date:
    return normalize_ts(ts).astimezone(tz).date()


def day_window(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC bounds ``[start, end)`` of a calendar day in the reporting timezone."""
    local_start = datetime.combine(day, time.min, tzinfo=tz)
    local_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


def date_range_window(start_date: date, end_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start_utc, _ = day_window(start_date, tz)
    _, end_utc = day_window(end_date, tz)
    return start_utc, end_utc


def event_sort_key(event: PunchEvent) -> tuple[datetime, int, str]:
    return event.timestamp, KIND_RANK[event.kind], event.id


def _first_present(row: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return None


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return normalize_ts(raw)
    if isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            return normalize_ts(datetime.fromisoformat(text))
        except ValueError as exc:
            raise InvalidPunchRowError(f"Unparseable timestamp: {raw!r}") from exc
    raise InvalidPunchRowError(f"Missing or invalid timestamp: {raw!r}")


def _parse_kind(raw: Any) -> PunchKind:
    if isinstance(raw, PunchKind):
        return raw
    if isinstance(raw, str):
        try:
            return PunchKind(raw.strip().lower())
        except ValueError:
            pass
    raise InvalidPunchRowError(f"Unknown punch kind: {raw!r}")


def _parse_identifier(raw: Any, field_name: str) -> str:
    if isinstance(raw, bool) or raw is None:
        raise InvalidPunchRowError(f"Missing {field_name}")
    if isinstance(raw, (str, int)):
        value = str(raw).strip()
        if value:
            return value
    raise InvalidPunchRowError(f"Invalid {field_name}: {raw!r}")


def parse_punch_row(row: Mapping[str, Any]) -> PunchEvent:
    """Validate one loosely-typed store row and convert it into a ``PunchEvent``.

    Accepts both the stored column names (``barber_id``, ``entry_type``) and the
    engine names (``worker_id``, ``kind``). Naive timestamps are taken as UTC.
    """
    if not isinstance(row, Mapping):
        raise InvalidPunchRowError("Punch row is not a mapping", row)

    try:
        event_id = _parse_identifier(row.get("id"), "id")
        worker_id = _parse_identifier(_first_present(row, _WORKER_ID_KEYS), "worker_id")
        kind = _parse_kind(_first_present(row, _KIND_KEYS))
        timestamp = _parse_timestamp(row.get("timestamp"))
    except InvalidPunchRowError as exc:
        raise InvalidPunchRowError(exc.reason, row) from exc

    note = row.get("note")
    if note is not None and not isinstance(note, str):
        note = str(note)

    return PunchEvent(id=event_id, worker_id=worker_id, kind=kind, timestamp=timestamp, note=note)


def parse_punch_rows(rows: Iterable[Mapping[str, Any]]) -> tuple[list[PunchEvent], list[RejectedRow]]:
    events: list[PunchEvent] = []
    rejected: list[RejectedRow] = []
    for row in rows:
        try:
            events.append(parse_punch_row(row))
        except InvalidPunchRowError as exc:
            rejected.append(RejectedRow(row=row, reason=exc.reason))
            logger.warning(
                "punch_row_rejected",
                extra={
                    "reason": exc.reason,
                    "row_id": row.get("id") if isinstance(row, Mapping) else None,
                },
            )
    return events, rejected


def normalize_events(
    events: Iterable[PunchEvent],
    *,
    tz: ZoneInfo,
    start_date: date | None = None,
    end_date: date | None = None,
    worker_id: str | None = None,
    on_duplicate: DuplicatePolicy = "drop",
) -> dict[tuple[str, date], list[PunchEvent]]:
    """Group events by ``(worker_id, local date)`` and sort each group.

    Dates are inclusive bounds in ``tz``. A repeated ``id`` raises
    ``DuplicateEventError`` when ``on_duplicate`` is ``"raise"``; otherwise the
    later occurrence is dropped and logged.
    """
    seen_ids: set[str] = set()
    grouped: dict[tuple[str, date], list[PunchEvent]] = defaultdict(list)

    for event in events:
        if event.id in seen_ids:
            if on_duplicate == "raise":
                raise DuplicateEventError(event.id, event.worker_id)
            logger.warning(
                "punch_duplicate_dropped",
                extra={"event_id": event.id, "worker_id": event.worker_id},
            )
            continue
        seen_ids.add(event.id)

        if worker_id is not None and event.worker_id != worker_id:
            continue
        day = local_date_of(event.timestamp, tz)
        if start_date is not None and day < start_date:
            continue
        if end_date is not None and day > end_date:
            continue
        grouped[(event.worker_id, day)].append(event)

    return {key: sorted(items, key=event_sort_key) for key, items in grouped.items()}
