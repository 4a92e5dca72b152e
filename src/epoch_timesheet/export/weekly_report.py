"""Weekly staff report in Excel format."""

import io
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

import openpyxl  # type: ignore[import-untyped]
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side  # type: ignore[import-untyped]
from openpyxl.worksheet.worksheet import Worksheet  # type: ignore[import-untyped]

from epoch_timesheet.core.models import TimeEntry

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SHEET_NAME = "Weekly Report"
DEFAULT_TITLE = "ZIHI Institute STAFF WEEKLY REPORT"

HEADERS = [
    "Day",
    "Date",
    "Work/Activity done",
    "Project",
    "Time in",
    "Time out",
    "Hours worked on project",
    "Billable/Non-billable",
]

COLUMN_WIDTHS = {"A": 15, "B": 15, "C": 50, "D": 30, "E": 12, "F": 12, "G": 20, "H": 20}

# English names regardless of the process locale, indexed by date.weekday()
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

HEADER_ROW = 4

THIN = Side(style="thin")
THIN_BORDER = Border(top=THIN, left=THIN, bottom=THIN, right=THIN)


@dataclass(frozen=True)
class WeeklyReport:
    """A rendered report, ready to be saved or sent as a download."""

    filename: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE

    def save(self, directory: Path) -> Path:
        """Write the report into a directory.

        Args:
            directory: Target directory (created if missing)

        Returns:
            Path of the written file
        """
        directory = Path(directory).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.content)
        return path


def weekday_name(entry_date: date) -> str:
    """English weekday name of a calendar date."""
    return WEEKDAYS[entry_date.weekday()]


def format_week_ending(today: date) -> str:
    """Format the week-ending date as M/D/YYYY."""
    return f"{today.month}/{today.day}/{today.year}"


def report_filename(identity_label: str, today: date) -> str:
    """Build the download name, e.g. WeeklyReport-ana@example.com-2024-06-14.xlsx."""
    return f"WeeklyReport-{identity_label}-{today.isoformat()}.xlsx"


def sort_for_report(entries: Iterable[TimeEntry]) -> list[TimeEntry]:
    """Sort entries by calendar date, oldest first, keeping input order for ties."""
    return sorted(entries, key=lambda entry: entry.entry_date)


def _write_header_block(ws: Worksheet, identity_label: str, today: date, title: str) -> None:
    ws.merge_cells("A1:H1")
    title_cell = ws["A1"]
    title_cell.value = title
    title_cell.font = Font(name="Calibri", size=16, bold=True)
    title_cell.alignment = Alignment(horizontal="center")
    ws.row_dimensions[1].height = 30

    ws.merge_cells("A3:B3")
    ws["A3"] = "STAFF NAME:"
    ws["A3"].font = Font(bold=True)
    ws["C3"] = identity_label

    ws.merge_cells("F3:G3")
    ws["F3"] = "WEEK ENDING:"
    ws["F3"].font = Font(bold=True)
    ws["H3"] = format_week_ending(today)


def _write_column_headers(ws: Worksheet) -> None:
    header_fill = PatternFill(start_color="0284C7", end_color="0284C7", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for col, header in enumerate(HEADERS, start=1):
        cell = ws.cell(row=HEADER_ROW, column=col, value=header)
        cell.font = header_font
        cell.alignment = header_alignment
        cell.border = THIN_BORDER
        cell.fill = header_fill
    ws.row_dimensions[HEADER_ROW].height = 30


def _write_entry_rows(ws: Worksheet, entries: list[TimeEntry]) -> None:
    data_alignment = Alignment(vertical="top", wrap_text=True)

    for row, entry in enumerate(entries, start=HEADER_ROW + 1):
        values = [
            weekday_name(entry.entry_date),
            entry.date,
            entry.activity,
            entry.project,
            entry.time_in,
            entry.time_out,
            entry.hours_worked,
            entry.billable.value,
        ]
        # Style every cell, empty ones included
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            cell.alignment = data_alignment


def build_weekly_report(
    entries: Iterable[TimeEntry],
    identity_label: str,
    today: Optional[date] = None,
    title: str = DEFAULT_TITLE,
) -> openpyxl.Workbook:
    """Lay out the weekly report workbook.

    Args:
        entries: Entries to include, in any order (not modified)
        identity_label: Staff name shown in the header block
        today: Week-ending date (defaults to the current date)
        title: Report title shown in the merged first row

    Returns:
        Workbook with a single "Weekly Report" sheet
    """
    if today is None:
        today = date.today()

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_NAME

    _write_header_block(ws, identity_label, today, title)
    _write_column_headers(ws)
    _write_entry_rows(ws, sort_for_report(entries))

    for letter, width in COLUMN_WIDTHS.items():
        ws.column_dimensions[letter].width = width

    return wb


def render_weekly_report(
    entries: Iterable[TimeEntry],
    identity_label: str,
    today: Optional[date] = None,
    title: str = DEFAULT_TITLE,
) -> WeeklyReport:
    """Build the weekly report and serialize it to xlsx bytes.

    Args:
        entries: Entries to include, in any order (not modified)
        identity_label: Staff name, also used in the filename
        today: Report date (defaults to the current date)
        title: Report title

    Returns:
        WeeklyReport with filename and content
    """
    if today is None:
        today = date.today()

    wb = build_weekly_report(entries, identity_label, today=today, title=title)
    buffer = io.BytesIO()
    wb.save(buffer)
    return WeeklyReport(filename=report_filename(identity_label, today), content=buffer.getvalue())
