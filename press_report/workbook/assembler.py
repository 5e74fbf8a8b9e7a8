"""
Write canonical rows into a report sheet stamped from the template.

The sheet either lands in a fresh copy of the template or is appended to a
baseline workbook supplied by the caller. Data rows start at the template's
pattern row; every data row takes the pattern row's styling, and trailing
template rows (the totals row) move down below the block.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any

from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from press_report.errors import WorkbookError
from press_report.merge import sorted_order
from press_report.rows import (
    FIELD_COLUMNS,
    REPORT_COLUMN_COUNT,
    SEQUENCE_COLUMN,
    TEXT_PLACEHOLDER,
    CanonicalRow,
    StyleWarnings,
    display_number,
    display_text,
    is_unresolved,
)
from press_report.urls import TRACKING_HOSTS, resolve_link_target
from press_report.workbook.formatting import (
    WARNING_COLOR,
    apply_link_style,
    autofit_columns,
    clone_row_style,
    insert_rows_preserving_layout,
    set_font_color,
    write_text,
)
from press_report.workbook.summary import append_summary_row
from press_report.workbook.template import (
    AD_EQ_FORMAT,
    DATA_START_ROW,
    DATE_FORMAT,
    DEFAULT_SHEET_NAME,
    HEADLINE_CELL,
    READERSHIP_FORMAT,
    TEMPLATE_TIMEOUT,
    TITLE_CELL,
    import_template_sheet,
    load_template_workbook,
    unique_sheet_name,
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DEFAULT_OUTPUT_NAME = "report.xlsx"
REPLACED_SUFFIXES = {".xls", ".xlsm", ".csv", ".txt"}

AUTOFIT_COLUMNS = (2, 3, 4, 5, 6, 7)
AUTOFIT_OVERRIDES = {2: {"max": 14}, 6: {"max": 16}}


@dataclass
class BuildOptions:
    sheet_name: str = DEFAULT_SHEET_NAME
    start_row: int = DATA_START_ROW
    write_totals: bool = True
    autofit: bool = True
    baseline: bytes | None = None
    number_prefix: str | None = None
    headline: str | None = None
    style_warnings: StyleWarnings | None = None
    sort_rows: bool = False
    output_filename: str = DEFAULT_OUTPUT_NAME
    template: str | Path | None = None
    template_timeout: float = TEMPLATE_TIMEOUT
    autofit_columns: tuple[int, ...] = AUTOFIT_COLUMNS
    autofit_min: float = 10
    autofit_max: float = 60
    autofit_pad: float = 2
    autofit_overrides: dict[int, dict[str, float]] = field(
        default_factory=lambda: {col: dict(limits) for col, limits in AUTOFIT_OVERRIDES.items()}
    )
    append_summary: bool = True
    summary_link: str | None = None
    tracking_hosts: tuple[str, ...] = TRACKING_HOSTS


@dataclass
class BuiltReport:
    filename: str
    content: bytes
    sheet_name: str
    row_count: int
    media_type: str = XLSX_MEDIA_TYPE

    def save(self, path: str | Path) -> Path:
        target = Path(path)
        target.write_bytes(self.content)
        return target

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "sheet_name": self.sheet_name,
            "row_count": self.row_count,
            "size_bytes": len(self.content),
            "media_type": self.media_type,
        }


def ensure_xlsx_name(name: str | None) -> str:
    text = (name or "").strip() or DEFAULT_OUTPUT_NAME
    suffix = PurePath(text).suffix.lower()
    if suffix == ".xlsx":
        return text
    if suffix in REPLACED_SUFFIXES:
        return text[: -len(suffix)] + ".xlsx"
    return text + ".xlsx"


# ═══════════════════════════════════════════════════════════════════════════════
# TARGET SHEET
# ═══════════════════════════════════════════════════════════════════════════════

def _open_target(options: BuildOptions):
    if options.baseline is not None:
        try:
            workbook = load_workbook(io.BytesIO(options.baseline), rich_text=True)
        except Exception as exc:
            raise WorkbookError(f"Baseline workbook could not be read: {exc}") from exc
        template = load_template_workbook(options.template, timeout=options.template_timeout)
        name = unique_sheet_name(workbook, options.sheet_name)
        worksheet = import_template_sheet(workbook, template.worksheets[0], name)
    else:
        workbook = load_template_workbook(options.template, timeout=options.template_timeout)
        worksheet = workbook.worksheets[0]
        worksheet.title = unique_sheet_name(workbook, options.sheet_name, ignore=worksheet)

    if worksheet is None or worksheet.title not in workbook.sheetnames:
        raise WorkbookError("Failed to acquire the report worksheet")
    workbook.active = workbook.worksheets.index(worksheet)
    return workbook, worksheet


def _headline_text(ws: Worksheet, override: str | None) -> str:
    if override is not None:
        return override.strip()
    current = ws[HEADLINE_CELL].value
    return "" if current is None else str(current).strip()


def _apply_headline(ws: Worksheet, headline: str | None, number_prefix: str | None) -> str:
    text = _headline_text(ws, headline)
    if headline:
        ws[HEADLINE_CELL] = text
    if text and number_prefix:
        ws[TITLE_CELL] = f"{number_prefix}. {text}"
    return text


# ═══════════════════════════════════════════════════════════════════════════════
# ROWS
# ═══════════════════════════════════════════════════════════════════════════════

def _write_number(cell, value, default_format: str) -> None:
    cell.value = display_number(value)
    if not cell.number_format or cell.number_format == "General":
        cell.number_format = default_format


def write_row(ws: Worksheet, row_index: int, sequence: int, row: CanonicalRow, tracking_hosts) -> None:
    ws.cell(row=row_index, column=SEQUENCE_COLUMN, value=sequence)

    published = ws.cell(row=row_index, column=FIELD_COLUMNS["published"])
    if is_unresolved(row.published):
        write_text(published, row.published_text or TEXT_PLACEHOLDER)
    else:
        published.value = row.published
        published.number_format = DATE_FORMAT

    write_text(ws.cell(row=row_index, column=FIELD_COLUMNS["outlet"]), display_text(row.outlet))

    title = ws.cell(row=row_index, column=FIELD_COLUMNS["title"])
    write_text(title, display_text(row.title))
    link = resolve_link_target(row.url, tracking_hosts)
    if link:
        title.hyperlink = link
        apply_link_style(title)

    _write_number(ws.cell(row=row_index, column=FIELD_COLUMNS["readership"]), row.readership, READERSHIP_FORMAT)
    _write_number(ws.cell(row=row_index, column=FIELD_COLUMNS["ad_eq"]), row.ad_eq, AD_EQ_FORMAT)
    write_text(ws.cell(row=row_index, column=FIELD_COLUMNS["base"]), display_text(row.base))


def apply_style_warnings(ws: Worksheet, start_row: int, warnings: StyleWarnings) -> None:
    for index, col in warnings.red_cells:
        set_font_color(ws.cell(row=start_row + index, column=col), WARNING_COLOR)
    for index in warnings.red_rows:
        for col in range(1, REPORT_COLUMN_COUNT + 1):
            set_font_color(ws.cell(row=start_row + index, column=col), WARNING_COLOR)


def write_totals(ws: Worksheet, start_row: int, row_count: int) -> int:
    last = start_row + row_count - 1
    totals_row = last + 1
    ws.cell(row=totals_row, column=FIELD_COLUMNS["readership"], value=f"=SUM(E{start_row}:E{last})")
    ws.cell(row=totals_row, column=FIELD_COLUMNS["ad_eq"], value=f"=SUM(F{start_row}:F{last})")
    return totals_row


def _numeric_total(rows: list[CanonicalRow], name: str) -> float:
    return sum(getattr(row, name) for row in rows if not is_unresolved(getattr(row, name)))


# ═══════════════════════════════════════════════════════════════════════════════
# BUILD
# ═══════════════════════════════════════════════════════════════════════════════

def build_report(rows: list[CanonicalRow], options: BuildOptions | None = None) -> BuiltReport:
    """Assemble ``rows`` into a report sheet and return the saved workbook."""
    options = options or BuildOptions()
    rows = list(rows)
    if not rows:
        raise WorkbookError("No rows to write")

    warnings = options.style_warnings or StyleWarnings()
    if options.sort_rows:
        order = sorted_order(rows)
        rows = [rows[index] for index in order]
        warnings = warnings.reindexed(order)

    workbook, ws = _open_target(options)
    start = options.start_row

    if len(rows) > 1:
        insert_rows_preserving_layout(ws, start + 1, len(rows) - 1)
        for offset in range(1, len(rows)):
            clone_row_style(ws, start, start + offset, max_column=REPORT_COLUMN_COUNT)

    headline = _apply_headline(ws, options.headline, options.number_prefix)

    for offset, row in enumerate(rows):
        write_row(ws, start + offset, offset + 1, row, options.tracking_hosts)

    if warnings:
        apply_style_warnings(ws, start, warnings)

    if options.write_totals:
        write_totals(ws, start, len(rows))

    if options.append_summary:
        append_summary_row(
            workbook,
            ws,
            start_row=start,
            row_count=len(rows),
            write_totals=options.write_totals,
            total_readership=_numeric_total(rows, "readership"),
            total_ad_eq=_numeric_total(rows, "ad_eq"),
            headline=headline or None,
            link=options.summary_link,
        )

    if options.autofit:
        autofit_columns(
            ws,
            options.autofit_columns,
            min_width=options.autofit_min,
            max_width=options.autofit_max,
            pad=options.autofit_pad,
            per_column=options.autofit_overrides,
        )

    buffer = io.BytesIO()
    workbook.save(buffer)
    return BuiltReport(
        filename=ensure_xlsx_name(options.output_filename),
        content=buffer.getvalue(),
        sheet_name=ws.title,
        row_count=len(rows),
    )
