from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from timeclock.models import PunchKind
from timeclock.services.clock_actions import validate_clock_action
from timeclock.services.formatting import (
    format_clock_time,
    format_date_long,
    format_date_short,
    format_duration,
)
from timeclock.services.normalizer import PunchEvent

TZ = ZoneInfo("America/New_York")


def _punches(*kinds: PunchKind) -> list[PunchEvent]:
    return [
        PunchEvent(
            id=f"p{index}",
            worker_id="b1",
            kind=kind,
            timestamp=datetime(2026, 2, 10, 14 + index, 0, tzinfo=timezone.utc),
        )
        for index, kind in enumerate(kinds)
    ]


class FormattingTests(unittest.TestCase):
    def test_clock_time_uses_reporting_timezone(self) -> None:
        instant = datetime(2026, 2, 10, 14, 5, tzinfo=timezone.utc)

        self.assertEqual(format_clock_time(instant, tz=TZ), "9:05 AM")
        self.assertEqual(format_clock_time(instant, tz=TZ, language="es"), "9:05 a. m.")

    def test_clock_time_noon_and_midnight(self) -> None:
        noon = datetime(2026, 2, 10, 17, 0, tzinfo=timezone.utc)
        midnight = datetime(2026, 2, 11, 5, 0, tzinfo=timezone.utc)

        self.assertEqual(format_clock_time(noon, tz=TZ), "12:00 PM")
        self.assertEqual(format_clock_time(midnight, tz=TZ), "12:00 AM")

    def test_duration(self) -> None:
        self.assertEqual(format_duration(0), "0h 0m")
        self.assertEqual(format_duration((7 * 60 + 30) * 60 * 1000), "7h 30m")
        self.assertEqual(format_duration(59_999), "0h 0m")
        self.assertEqual(format_duration(-5000), "0h 0m")

    def test_dates(self) -> None:
        day = date(2026, 2, 10)

        self.assertEqual(format_date_long(day), "Tuesday, February 10, 2026")
        self.assertEqual(format_date_short(day), "Feb 10, 2026")
        self.assertEqual(format_date_long(day, language="es"), "martes, 10 de febrero de 2026")


class ClockActionTests(unittest.TestCase):
    def test_first_punch_must_be_clock_in(self) -> None:
        self.assertTrue(validate_clock_action([], PunchKind.CLOCK_IN).valid)
        check = validate_clock_action([], PunchKind.BREAK_START)
        self.assertFalse(check.valid)
        self.assertEqual(check.reason, "Must clock in first")

    def test_working_transitions(self) -> None:
        working = _punches(PunchKind.CLOCK_IN)

        self.assertEqual(validate_clock_action(working, PunchKind.CLOCK_IN).reason, "Already clocked in")
        self.assertTrue(validate_clock_action(working, PunchKind.BREAK_START).valid)
        self.assertTrue(validate_clock_action(working, PunchKind.CLOCK_OUT).valid)
        self.assertEqual(validate_clock_action(working, PunchKind.BREAK_END).reason, "No break to end")

    def test_on_break_transitions(self) -> None:
        on_break = _punches(PunchKind.CLOCK_IN, PunchKind.BREAK_START)

        self.assertTrue(validate_clock_action(on_break, PunchKind.BREAK_END).valid)
        self.assertEqual(
            validate_clock_action(on_break, PunchKind.CLOCK_OUT).reason,
            "Must end break before clocking out",
        )
        self.assertEqual(
            validate_clock_action(on_break, PunchKind.BREAK_START).reason,
            "Must clock in first or end current break",
        )

    def test_after_clock_out(self) -> None:
        done = _punches(PunchKind.CLOCK_IN, PunchKind.CLOCK_OUT)

        self.assertTrue(validate_clock_action(done, PunchKind.CLOCK_IN).valid)
        self.assertEqual(validate_clock_action(done, PunchKind.CLOCK_OUT).reason, "Not clocked in")

    def test_uses_latest_punch_regardless_of_input_order(self) -> None:
        on_break = list(reversed(_punches(PunchKind.CLOCK_IN, PunchKind.BREAK_START)))

        self.assertTrue(validate_clock_action(on_break, PunchKind.BREAK_END).valid)


if __name__ == "__main__":
    unittest.main()
