"""
The report template: a one-sheet layout every built sheet is stamped from.

Layout contract (1-based rows and columns):
    A1        title cell, "{prefix}. {headline}"
    B1:G1     headline cell (merged)
    row 2     column headers
    row 3     data pattern row; every data row clones its styling
    row 4     totals row, SUM formulas in E and F

The bundled template is generated with openpyxl. A replacement can be
supplied as a local path or an http(s) URL as long as it keeps this layout.
"""

from __future__ import annotations

import io
import re
import time
from copy import copy
from functools import lru_cache
from pathlib import Path

import requests
from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from press_report.errors import TemplateError
from press_report.workbook.formatting import copy_cell_style

DATA_START_ROW = 3
TITLE_CELL = "A1"
HEADLINE_CELL = "B1"
SHEET_NAME_LIMIT = 31
DEFAULT_SHEET_NAME = "Report"
DEFAULT_HEADLINE = "Media Coverage Report"

COLUMN_HEADERS = ("No.", "Published", "Outlet", "Title", "Readership", "Ad Eq", "Base")
COLUMN_WIDTHS = (6, 14, 24, 48, 14, 16, 16)

DATE_FORMAT = "dd-mmm-yy"
READERSHIP_FORMAT = "#,##0"
AD_EQ_FORMAT = "$#,##0"

HEADER_FILL = "1F4E78"
TEMPLATE_TIMEOUT = 30.0

INVALID_SHEET_CHARS_RE = re.compile(r"[\[\]:*?/\\]")


def build_default_template() -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = DEFAULT_SHEET_NAME

    thin = Side(style="thin", color="BFBFBF")
    box = Border(left=thin, right=thin, top=thin, bottom=thin)

    ws[TITLE_CELL].font = Font(bold=True, size=14)
    ws[HEADLINE_CELL] = DEFAULT_HEADLINE
    ws[HEADLINE_CELL].font = Font(bold=True, size=12)
    ws[HEADLINE_CELL].alignment = Alignment(horizontal="left", vertical="center")
    ws.merge_cells("B1:G1")
    ws.row_dimensions[1].height = 24

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill("solid", fgColor=HEADER_FILL)
    for col, label in enumerate(COLUMN_HEADERS, start=1):
        cell = ws.cell(row=2, column=col, value=label)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = box
        cell.alignment = Alignment(horizontal="center", vertical="center")

    number_formats = {2: DATE_FORMAT, 5: READERSHIP_FORMAT, 6: AD_EQ_FORMAT}
    for col in range(1, len(COLUMN_HEADERS) + 1):
        cell = ws.cell(row=DATA_START_ROW, column=col)
        cell.font = Font(name="Calibri", size=11)
        cell.border = box
        cell.alignment = Alignment(
            horizontal="center" if col in (1, 2) else ("right" if col in (5, 6) else "left"),
            vertical="top",
            wrap_text=col == 4,
        )
        if col in number_formats:
            cell.number_format = number_formats[col]

    totals_row = DATA_START_ROW + 1
    label = ws.cell(row=totals_row, column=4, value="Total")
    label.font = Font(bold=True)
    label.alignment = Alignment(horizontal="right")
    double_top = Border(top=Side(style="double"))
    for col, fmt in ((5, READERSHIP_FORMAT), (6, AD_EQ_FORMAT)):
        cell = ws.cell(row=totals_row, column=col)
        cell.font = Font(bold=True)
        cell.border = double_top
        cell.number_format = fmt

    for col, width in enumerate(COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = "A3"
    return wb


@lru_cache(maxsize=1)
def bundled_template_bytes() -> bytes:
    buffer = io.BytesIO()
    build_default_template().save(buffer)
    return buffer.getvalue()


def template_bytes(source: str | Path | None = None, *, timeout: float = TEMPLATE_TIMEOUT) -> bytes:
    """Raw bytes of the template from the bundle, a local path or an http(s) URL."""
    if source is None or str(source).strip() == "":
        return bundled_template_bytes()
    text = str(source).strip()
    if re.match(r"^https?://", text, flags=re.IGNORECASE):
        try:
            response = requests.get(text, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TemplateError(f"Failed to load template file: {exc}") from exc
        return response.content
    try:
        return Path(text).read_bytes()
    except OSError as exc:
        raise TemplateError(f"Failed to load template file: {exc}") from exc


def load_template_workbook(source: str | Path | None = None, *, timeout: float = TEMPLATE_TIMEOUT) -> Workbook:
    raw = template_bytes(source, timeout=timeout)
    try:
        workbook = load_workbook(io.BytesIO(raw), rich_text=True)
    except Exception as exc:
        raise TemplateError(f"Template is not a readable workbook: {exc}") from exc
    if not workbook.worksheets:
        raise TemplateError("Template workbook has no sheets")
    return workbook


def unique_sheet_name(workbook: Workbook, desired: str | None, *, ignore: Worksheet | None = None) -> str:
    """
    A sheet name not yet used in ``workbook``.

    Names are compared case-insensitively and limited to 31 characters;
    collisions get ``-1``, ``-2``, ... suffixes, and a time-derived name is
    used once those run out.
    """
    base = INVALID_SHEET_CHARS_RE.sub("-", (desired or "").strip())[:SHEET_NAME_LIMIT].strip("'")
    base = base or DEFAULT_SHEET_NAME
    existing = {ws.title.lower() for ws in workbook.worksheets if ws is not ignore}
    if base.lower() not in existing:
        return base
    for counter in range(1, 1000):
        suffix = f"-{counter}"
        candidate = base[: SHEET_NAME_LIMIT - len(suffix)] + suffix
        if candidate.lower() not in existing:
            return candidate
    return f"{base[: SHEET_NAME_LIMIT - 7]}-{int(time.time() * 1000) % 1_000_000:06d}"


def import_template_sheet(workbook: Workbook, source: Worksheet, name: str) -> Worksheet:
    """Copy ``source`` (from another workbook) into ``workbook`` as ``name``."""
    target = workbook.create_sheet(name)

    for key, dimension in source.column_dimensions.items():
        if dimension.width:
            target.column_dimensions[key].width = dimension.width
    for index, dimension in source.row_dimensions.items():
        if dimension.height:
            target.row_dimensions[index].height = dimension.height

    for row in source.iter_rows():
        for cell in row:
            if isinstance(cell, MergedCell):
                continue
            copied = target.cell(row=cell.row, column=cell.column)
            copied.value = copy(cell.value)
            copy_cell_style(cell, copied)
            if cell.hyperlink is not None and cell.hyperlink.target:
                copied.hyperlink = cell.hyperlink.target

    for merged in source.merged_cells.ranges:
        target.merge_cells(merged.coord)
    target.freeze_panes = source.freeze_panes
    return target
