from __future__ import annotations

import csv
from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timezone
from io import BytesIO, StringIO
from typing import Any, Literal
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from timeclock.services.daily_summary import DailySummary, summarize_totals
from timeclock.services.formatting import Language, format_clock_time, format_duration

SheetMode = Literal["consolidated", "worker_sheets"]

EXPORT_COLUMNS = (
    "date",
    "worker_name",
    "clock_in",
    "clock_out",
    "breaks",
    "total_hours",
    "break_hours",
    "net_hours",
    "net_time",
    "status",
    "entry_count",
    "issues",
)

EXPORT_HEADERS: dict[str, dict[str, str]] = {
    "en": {
        "date": "Date",
        "worker_name": "Barber",
        "clock_in": "Clock In",
        "clock_out": "Clock Out",
        "breaks": "Breaks",
        "total_hours": "Total Hours",
        "break_hours": "Break Hours",
        "net_hours": "Net Hours",
        "net_time": "Net Time",
        "status": "Status",
        "entry_count": "Entries",
        "issues": "Issues",
    },
    "es": {
        "date": "Fecha",
        "worker_name": "Barbero",
        "clock_in": "Entrada",
        "clock_out": "Salida",
        "breaks": "Descansos",
        "total_hours": "Horas Totales",
        "break_hours": "Horas de Descanso",
        "net_hours": "Horas Netas",
        "net_time": "Tiempo Neto",
        "status": "Estado",
        "entry_count": "Registros",
        "issues": "Problemas",
    },
}

REPORT_LABELS: dict[str, dict[str, str]] = {
    "en": {
        "title": "BARBER TIME TRACKING REPORT",
        "range": "Date Range",
        "timezone": "Timezone",
        "generated": "Generated (UTC)",
        "rows": "Rows",
        "issues": "Rows With Issues",
        "totals": "Totals",
        "open": "open",
    },
    "es": {
        "title": "REPORTE DE TIEMPO DE BARBEROS",
        "range": "Rango de Fechas",
        "timezone": "Zona Horaria",
        "generated": "Generado (UTC)",
        "rows": "Filas",
        "issues": "Filas con Problemas",
        "totals": "Totales",
        "open": "abierto",
    },
}

HOURS_DECIMALS = 2

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F9")
META_VALUE_FILL = PatternFill(fill_type="solid", fgColor="F8FCFF")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
WARNING_FILL = PatternFill(fill_type="solid", fgColor="FFF3CD")
ALERT_FILL = PatternFill(fill_type="solid", fgColor="FDE2E4")
SUMMARY_FILL = PatternFill(fill_type="solid", fgColor="E9F1F7")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def _lang(language: str) -> str:
    return language if language in EXPORT_HEADERS else "en"


def _breaks_label(summary: DailySummary, *, tz: ZoneInfo, language: Language) -> str:
    open_label = REPORT_LABELS[_lang(language)]["open"]
    parts: list[str] = []
    for item in summary.shift.breaks:
        start = format_clock_time(item.start, tz=tz, language=language)
        end = format_clock_time(item.end, tz=tz, language=language) if item.end is not None else open_label
        parts.append(f"{start}-{end}")
    return ", ".join(parts)


def summary_export_rows(
    summaries: Sequence[DailySummary],
    *,
    tz: ZoneInfo,
    language: Language = "en",
) -> list[dict[str, Any]]:
    """Flatten daily summaries into export rows keyed by ``EXPORT_COLUMNS``."""
    rows: list[dict[str, Any]] = []
    for summary in summaries:
        shift = summary.shift
        rows.append(
            {
                "date": summary.date.isoformat(),
                "worker_name": summary.worker_name,
                "clock_in": format_clock_time(shift.clock_in, tz=tz, language=language) if shift.clock_in else "",
                "clock_out": format_clock_time(shift.clock_out, tz=tz, language=language) if shift.clock_out else "",
                "breaks": _breaks_label(summary, tz=tz, language=language),
                "total_hours": round(summary.total_hours, HOURS_DECIMALS),
                "break_hours": round(summary.break_hours, HOURS_DECIMALS),
                "net_hours": round(summary.net_hours, HOURS_DECIMALS),
                "net_time": format_duration(shift.net_worked_ms),
                "status": shift.status.value,
                "entry_count": summary.entry_count,
                "issues": summary.issue_description or "",
            }
        )
    return rows


def build_summaries_csv(
    summaries: Sequence[DailySummary],
    *,
    tz: ZoneInfo,
    language: Language = "en",
) -> str:
    headers = EXPORT_HEADERS[_lang(language)]
    stream = StringIO()
    writer = csv.DictWriter(stream, fieldnames=list(EXPORT_COLUMNS), lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(summary_export_rows(summaries, tz=tz, language=language))
    return stream.getvalue()


def _style_header(ws: Worksheet, row: int = 1) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _merge_title(ws: Worksheet, row: int, text: str) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=len(EXPORT_COLUMNS))
    cell = ws.cell(row=row, column=1, value=text)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")


def _style_metadata_rows(ws: Worksheet, *, start_row: int, end_row: int) -> None:
    for row_idx in range(start_row, end_row + 1):
        label_cell = ws.cell(row=row_idx, column=1)
        value_cell = ws.cell(row=row_idx, column=2)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        label_cell.alignment = Alignment(horizontal="left", vertical="center")
        label_cell.border = THIN_BORDER

        value_cell.font = MUTED_FONT
        value_cell.fill = META_VALUE_FILL
        value_cell.alignment = Alignment(horizontal="left", vertical="center")
        value_cell.border = THIN_BORDER


def _style_table_region(ws: Worksheet, *, header_row: int, data_start_row: int, data_end_row: int) -> None:
    ws.freeze_panes = f"A{header_row + 1}"
    if data_end_row < data_start_row:
        return

    ws.auto_filter.ref = f"A{header_row}:{get_column_letter(len(EXPORT_COLUMNS))}{data_end_row}"
    status_col = EXPORT_COLUMNS.index("status") + 1
    issues_col = EXPORT_COLUMNS.index("issues") + 1

    for row_idx in range(data_start_row, data_end_row + 1):
        status_value = ws.cell(row=row_idx, column=status_col).value
        if status_value == "incomplete":
            row_fill = WARNING_FILL
        elif row_idx % 2 == 0:
            row_fill = ZEBRA_FILL
        else:
            row_fill = PatternFill(fill_type=None)

        for col_idx in range(1, len(EXPORT_COLUMNS) + 1):
            cell = ws.cell(row=row_idx, column=col_idx)
            cell.border = THIN_BORDER
            if row_fill.fill_type:
                cell.fill = row_fill
            if isinstance(cell.value, (int, float)):
                cell.alignment = Alignment(horizontal="center", vertical="center")
            else:
                cell.alignment = Alignment(horizontal="left", vertical="center")

        issue_cell = ws.cell(row=row_idx, column=issues_col)
        if issue_cell.value not in {None, ""}:
            issue_cell.fill = ALERT_FILL
            issue_cell.font = Font(bold=True, color="9F1239")


def _safe_sheet_title(title: str, fallback: str) -> str:
    cleaned = "".join(ch for ch in title if ch not in ['\\', '/', '*', '?', ':', '[', ']']).strip()
    if not cleaned:
        cleaned = fallback
    return cleaned[:31]


def _write_summary_sheet(
    ws: Worksheet,
    summaries: Sequence[DailySummary],
    *,
    tz: ZoneInfo,
    language: Language,
    range_label: str,
    generated_at_utc: datetime,
) -> None:
    labels = REPORT_LABELS[_lang(language)]
    headers = EXPORT_HEADERS[_lang(language)]
    totals = summarize_totals(summaries)

    _merge_title(ws, 1, labels["title"])
    ws.append([labels["range"], range_label])
    ws.append([labels["timezone"], tz.key])
    ws.append([labels["generated"], generated_at_utc.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")])
    ws.append([labels["rows"], totals.row_count])
    ws.append([labels["issues"], totals.issue_count])
    _style_metadata_rows(ws, start_row=2, end_row=6)

    header_row = ws.max_row + 2
    for col_idx, column in enumerate(EXPORT_COLUMNS, start=1):
        ws.cell(row=header_row, column=col_idx, value=headers[column])
    _style_header(ws, header_row)

    for row in summary_export_rows(summaries, tz=tz, language=language):
        ws.append([row[column] for column in EXPORT_COLUMNS])
    data_start = header_row + 1
    data_end = ws.max_row
    _style_table_region(ws, header_row=header_row, data_start_row=data_start, data_end_row=data_end)

    footer = [""] * len(EXPORT_COLUMNS)
    footer[0] = labels["totals"]
    footer[EXPORT_COLUMNS.index("total_hours")] = round(totals.total_hours, HOURS_DECIMALS)
    footer[EXPORT_COLUMNS.index("break_hours")] = round(totals.break_hours, HOURS_DECIMALS)
    footer[EXPORT_COLUMNS.index("net_hours")] = round(totals.net_hours, HOURS_DECIMALS)
    ws.append(footer)
    for cell in ws[ws.max_row]:
        cell.font = BOLD_FONT
        cell.fill = SUMMARY_FILL
        cell.border = THIN_BORDER

    _auto_width(ws)


def build_summaries_xlsx_bytes(
    summaries: Sequence[DailySummary],
    *,
    tz: ZoneInfo,
    range_label: str,
    generated_at_utc: datetime,
    language: Language = "en",
    mode: SheetMode = "consolidated",
) -> bytes:
    wb = Workbook()

    if mode == "worker_sheets" and summaries:
        grouped: dict[tuple[str, str], list[DailySummary]] = defaultdict(list)
        for summary in summaries:
            grouped[(summary.worker_name, summary.worker_id)].append(summary)

        first = True
        for (worker_name, worker_id), group_rows in sorted(grouped.items()):
            if first:
                ws = wb.active
                first = False
            else:
                ws = wb.create_sheet()
            ws.title = _safe_sheet_title(worker_name, f"Barber {worker_id}")
            _write_summary_sheet(
                ws,
                group_rows,
                tz=tz,
                language=language,
                range_label=range_label,
                generated_at_utc=generated_at_utc,
            )
    else:
        ws = wb.active
        ws.title = "Summary"
        _write_summary_sheet(
            ws,
            summaries,
            tz=tz,
            language=language,
            range_label=range_label,
            generated_at_utc=generated_at_utc,
        )

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
