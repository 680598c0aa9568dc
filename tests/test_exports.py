from __future__ import annotations

import csv
import unittest
from datetime import date, datetime, timezone
from io import BytesIO, StringIO
from zoneinfo import ZoneInfo

from openpyxl import load_workbook

from timeclock.models import PunchKind
from timeclock.services.daily_summary import summarize_punches
from timeclock.services.exports import (
    build_summaries_csv,
    build_summaries_xlsx_bytes,
    summary_export_rows,
)
from timeclock.services.normalizer import PunchEvent

TZ = ZoneInfo("America/New_York")
DAY = date(2026, 2, 10)
REFERENCE_NOW = datetime(2026, 2, 20, 15, 0, tzinfo=timezone.utc)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(DAY.year, DAY.month, DAY.day, hour, minute, tzinfo=TZ).astimezone(timezone.utc)


def _summaries():
    events = [
        PunchEvent(id="a1", worker_id="b1", kind=PunchKind.CLOCK_IN, timestamp=_at(9)),
        PunchEvent(id="a2", worker_id="b1", kind=PunchKind.BREAK_START, timestamp=_at(12)),
        PunchEvent(id="a3", worker_id="b1", kind=PunchKind.BREAK_END, timestamp=_at(12, 30)),
        PunchEvent(id="a4", worker_id="b1", kind=PunchKind.CLOCK_OUT, timestamp=_at(17)),
        PunchEvent(id="c1", worker_id="b2", kind=PunchKind.CLOCK_IN, timestamp=_at(10)),
    ]
    return summarize_punches(
        events,
        {"b1": "Lopez, Ana", "b2": "Ben"},
        tz=TZ,
        reference_now=REFERENCE_NOW,
    )


class ExportRowsTests(unittest.TestCase):
    def test_rows_are_flattened_with_labels(self) -> None:
        rows = summary_export_rows(_summaries(), tz=TZ)

        self.assertEqual([row["worker_name"] for row in rows], ["Ben", "Lopez, Ana"])
        ana = rows[1]
        self.assertEqual(ana["date"], "2026-02-10")
        self.assertEqual(ana["clock_in"], "9:00 AM")
        self.assertEqual(ana["clock_out"], "5:00 PM")
        self.assertEqual(ana["breaks"], "12:00 PM-12:30 PM")
        self.assertEqual(ana["total_hours"], 8.0)
        self.assertEqual(ana["net_hours"], 7.5)
        self.assertEqual(ana["net_time"], "7h 30m")
        self.assertEqual(ana["status"], "complete")
        self.assertEqual(ana["issues"], "")

        ben = rows[0]
        self.assertEqual(ben["clock_out"], "")
        self.assertEqual(ben["status"], "incomplete")
        self.assertEqual(ben["issues"], "missing clock-out")

    def test_csv_quotes_fields_with_commas(self) -> None:
        payload = build_summaries_csv(_summaries(), tz=TZ)

        parsed = list(csv.reader(StringIO(payload)))
        self.assertEqual(parsed[0][:3], ["Date", "Barber", "Clock In"])
        self.assertEqual(parsed[2][1], "Lopez, Ana")
        self.assertIn('"Lopez, Ana"', payload)
        self.assertEqual(len(parsed), 3)

    def test_csv_spanish_headers(self) -> None:
        payload = build_summaries_csv(_summaries(), tz=TZ, language="es")

        header = next(csv.reader(StringIO(payload)))
        self.assertEqual(header[:2], ["Fecha", "Barbero"])


class ExportWorkbookTests(unittest.TestCase):
    def test_consolidated_workbook_has_rows_and_totals(self) -> None:
        payload = build_summaries_xlsx_bytes(
            _summaries(),
            tz=TZ,
            range_label="2026-02-10 - 2026-02-10",
            generated_at_utc=REFERENCE_NOW,
        )

        wb = load_workbook(BytesIO(payload))
        ws = wb["Summary"]
        self.assertEqual(ws["A1"].value, "BARBER TIME TRACKING REPORT")
        self.assertEqual(ws["B2"].value, "2026-02-10 - 2026-02-10")
        self.assertEqual(ws["B3"].value, "America/New_York")
        self.assertEqual(ws["B5"].value, 2)
        self.assertEqual(ws["B6"].value, 1)

        header_row = next(
            row_idx for row_idx in range(1, ws.max_row + 1) if ws.cell(row=row_idx, column=1).value == "Date"
        )
        self.assertEqual(ws.cell(row=header_row + 1, column=2).value, "Ben")
        self.assertEqual(ws.cell(row=header_row + 2, column=2).value, "Lopez, Ana")
        self.assertEqual(ws.cell(row=ws.max_row, column=1).value, "Totals")

    def test_worker_sheets_mode(self) -> None:
        payload = build_summaries_xlsx_bytes(
            _summaries(),
            tz=TZ,
            range_label="2026-02-10 - 2026-02-10",
            generated_at_utc=REFERENCE_NOW,
            mode="worker_sheets",
        )

        wb = load_workbook(BytesIO(payload))
        self.assertEqual(wb.sheetnames, ["Ben", "Lopez, Ana"])

    def test_empty_report_still_builds(self) -> None:
        payload = build_summaries_xlsx_bytes(
            [],
            tz=TZ,
            range_label="2026-03-01 - 2026-03-02",
            generated_at_utc=REFERENCE_NOW,
            mode="worker_sheets",
        )

        wb = load_workbook(BytesIO(payload))
        self.assertEqual(wb.sheetnames, ["Summary"])
        self.assertEqual(wb["Summary"]["B5"].value, 0)


if __name__ == "__main__":
    unittest.main()
