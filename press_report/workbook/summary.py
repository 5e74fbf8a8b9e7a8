"""Index entries on the workbook's ``PRs`` summary sheet."""

from __future__ import annotations

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from press_report.workbook.formatting import apply_link_style, clone_row_style, write_text

SUMMARY_SHEET_NAME = "PRs"
SUMMARY_FIRST_ROW = 2
SUMMARY_COLUMN_COUNT = 8


def find_summary_sheet(workbook: Workbook, name: str = SUMMARY_SHEET_NAME) -> Worksheet | None:
    return workbook[name] if name in workbook.sheetnames else None


def is_row_empty(ws: Worksheet, row: int) -> bool:
    for col in range(1, max(ws.max_column, SUMMARY_COLUMN_COUNT) + 1):
        value = ws.cell(row=row, column=col).value
        if value is not None and value != "":
            return False
    return True


def sheet_reference(sheet_name: str) -> str:
    return "'" + sheet_name.replace("'", "''") + "'!"


def append_summary_row(
    workbook: Workbook,
    report_sheet: Worksheet,
    *,
    start_row: int,
    row_count: int,
    write_totals: bool,
    total_readership: float,
    total_ad_eq: float,
    headline: str | None = None,
    link: str | None = None,
    sheet_name: str = SUMMARY_SHEET_NAME,
) -> int | None:
    """
    Append one entry for ``report_sheet`` to the summary sheet.

    Returns the summary row written, or ``None`` when the workbook has no
    summary sheet or nothing was reported.
    """
    if not row_count:
        return None
    summary = find_summary_sheet(workbook, sheet_name)
    if summary is None:
        return None

    row = SUMMARY_FIRST_ROW
    while not is_row_empty(summary, row):
        row += 1
    if row > SUMMARY_FIRST_ROW:
        clone_row_style(summary, SUMMARY_FIRST_ROW, row)

    summary.cell(row=row, column=1, value=row - SUMMARY_FIRST_ROW + 1)
    title_cell = summary.cell(row=row, column=3)
    if headline:
        write_text(title_cell, headline)
        if link:
            title_cell.hyperlink = link
            apply_link_style(title_cell)

    last_data_row = start_row + row_count - 1
    reference = sheet_reference(report_sheet.title)
    summary.cell(row=row, column=5, value=f"={reference}$A${last_data_row}")
    if write_totals:
        totals_row = last_data_row + 1
        summary.cell(row=row, column=6, value=f"={reference}$E${totals_row}")
        summary.cell(row=row, column=7, value=f"={reference}$F${totals_row}")
    else:
        summary.cell(row=row, column=6, value=total_readership)
        summary.cell(row=row, column=7, value=total_ad_eq)
    return row
