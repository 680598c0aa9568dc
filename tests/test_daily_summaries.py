from __future__ import annotations

import random
import unittest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from timeclock.models import PunchKind
from timeclock.services.daily_summary import (
    build_daily_summaries,
    ms_to_hours,
    summarize_punches,
    summarize_totals,
)
from timeclock.services.normalizer import PunchEvent
from timeclock.services.shifts import ShiftStatus, reconstruct_shift

TZ = ZoneInfo("America/New_York")
REFERENCE_NOW = datetime(2026, 2, 20, 15, 0, tzinfo=timezone.utc)
DAYS = [date(2026, 2, 10), date(2026, 2, 11), date(2026, 2, 12)]


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=TZ).astimezone(timezone.utc)


def _workday(worker_id: str, day: date, *, start: int, end: int, with_break: bool) -> list[PunchEvent]:
    prefix = f"{worker_id}-{day.isoformat()}"
    events = [PunchEvent(id=f"{prefix}-in", worker_id=worker_id, kind=PunchKind.CLOCK_IN, timestamp=_at(day, start))]
    if with_break:
        events.append(
            PunchEvent(id=f"{prefix}-bs", worker_id=worker_id, kind=PunchKind.BREAK_START, timestamp=_at(day, 12))
        )
        events.append(
            PunchEvent(id=f"{prefix}-be", worker_id=worker_id, kind=PunchKind.BREAK_END, timestamp=_at(day, 12, 45))
        )
    events.append(PunchEvent(id=f"{prefix}-out", worker_id=worker_id, kind=PunchKind.CLOCK_OUT, timestamp=_at(day, end)))
    return events


def _two_worker_events() -> list[PunchEvent]:
    events: list[PunchEvent] = []
    for day in DAYS:
        events.extend(_workday("b1", day, start=9, end=17, with_break=True))
        events.extend(_workday("b2", day, start=10, end=14, with_break=False))
    return events


class DailySummaryTests(unittest.TestCase):
    def test_two_workers_three_days_sorted_without_leakage(self) -> None:
        events = _two_worker_events()
        random.Random(3).shuffle(events)

        summaries = summarize_punches(
            events,
            {"b1": "Zed", "b2": "Alice"},
            tz=TZ,
            reference_now=REFERENCE_NOW,
            start_date=DAYS[0],
            end_date=DAYS[-1],
        )

        self.assertEqual(len(summaries), 6)
        self.assertEqual(
            [(item.date, item.worker_name) for item in summaries],
            [(day, name) for day in DAYS for name in ("Alice", "Zed")],
        )
        for item in summaries:
            self.assertTrue(all(event.worker_id == item.worker_id for event in item.shift.events))
            self.assertEqual(item.shift.status, ShiftStatus.COMPLETE)
            self.assertFalse(item.has_issues)
            if item.worker_id == "b1":
                self.assertEqual(len(item.shift.breaks), 1)
                self.assertAlmostEqual(item.total_hours, 8.0)
                self.assertAlmostEqual(item.break_hours, 0.75)
                self.assertAlmostEqual(item.net_hours, 7.25)
                self.assertEqual(item.entry_count, 4)
            else:
                self.assertEqual(item.shift.breaks, ())
                self.assertAlmostEqual(item.net_hours, 4.0)
                self.assertEqual(item.entry_count, 2)

    def test_missing_name_falls_back_to_worker_id(self) -> None:
        summaries = summarize_punches(
            _workday("b9", DAYS[0], start=9, end=10, with_break=False),
            {},
            tz=TZ,
            reference_now=REFERENCE_NOW,
        )

        self.assertEqual(summaries[0].worker_name, "b9")

    def test_callable_name_lookup(self) -> None:
        summaries = summarize_punches(
            _workday("b1", DAYS[0], start=9, end=10, with_break=False),
            lambda worker_id: {"b1": "Marco"}.get(worker_id),
            tz=TZ,
            reference_now=REFERENCE_NOW,
        )

        self.assertEqual(summaries[0].worker_name, "Marco")

    def test_same_name_ties_break_on_worker_id(self) -> None:
        shifts = [
            reconstruct_shift(
                _workday(worker_id, DAYS[0], start=9, end=17, with_break=False),
                worker_id=worker_id,
                day=DAYS[0],
                tz=TZ,
                reference_now=REFERENCE_NOW,
            )
            for worker_id in ("b3", "b1", "b2")
        ]

        summaries = build_daily_summaries(shifts, {"b1": "Sam", "b2": "Sam", "b3": "Sam"})

        self.assertEqual([item.worker_id for item in summaries], ["b1", "b2", "b3"])

    def test_worker_filter_and_empty_range(self) -> None:
        events = _two_worker_events()

        only_b2 = summarize_punches(
            events,
            {},
            tz=TZ,
            reference_now=REFERENCE_NOW,
            start_date=DAYS[0],
            end_date=DAYS[-1],
            worker_id="b2",
        )
        empty = summarize_punches(
            events,
            {},
            tz=TZ,
            reference_now=REFERENCE_NOW,
            start_date=date(2026, 3, 1),
            end_date=date(2026, 3, 31),
        )

        self.assertEqual({item.worker_id for item in only_b2}, {"b2"})
        self.assertEqual(len(only_b2), 3)
        self.assertEqual(empty, [])

    def test_issue_rows_carry_description(self) -> None:
        events = [
            PunchEvent(id="x1", worker_id="b1", kind=PunchKind.CLOCK_IN, timestamp=_at(DAYS[0], 9)),
        ]

        summaries = summarize_punches(events, {"b1": "Zed"}, tz=TZ, reference_now=REFERENCE_NOW)

        self.assertTrue(summaries[0].has_issues)
        self.assertEqual(summaries[0].issue_description, "missing clock-out")
        self.assertEqual(summaries[0].shift.status, ShiftStatus.INCOMPLETE)

    def test_pipeline_is_idempotent(self) -> None:
        events = _two_worker_events()
        first = summarize_punches(events, {"b1": "Zed"}, tz=TZ, reference_now=REFERENCE_NOW)
        second = summarize_punches(list(reversed(events)), {"b1": "Zed"}, tz=TZ, reference_now=REFERENCE_NOW)

        self.assertEqual(first, second)

    def test_totals(self) -> None:
        summaries = summarize_punches(
            _two_worker_events(),
            {"b1": "Zed", "b2": "Alice"},
            tz=TZ,
            reference_now=REFERENCE_NOW,
        )

        totals = summarize_totals(summaries)

        self.assertEqual(totals.row_count, 6)
        self.assertEqual(totals.issue_count, 0)
        self.assertAlmostEqual(totals.total_hours, 36.0)
        self.assertAlmostEqual(totals.break_hours, 2.25)
        self.assertAlmostEqual(totals.net_hours, 33.75)

    def test_ms_to_hours_is_not_rounded(self) -> None:
        self.assertAlmostEqual(ms_to_hours(61 * 60 * 1000), 61 / 60)


if __name__ == "__main__":
    unittest.main()
