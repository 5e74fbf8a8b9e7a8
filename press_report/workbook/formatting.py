"""Cell styling, row insertion and column auto-fit for report sheets."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from copy import copy
from datetime import date, datetime

from openpyxl.cell.cell import MergedCell
from openpyxl.cell.rich_text import CellRichText
from openpyxl.styles import Font
from openpyxl.styles.colors import Color
from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.worksheet.cell_range import CellRange
from openpyxl.worksheet.worksheet import Worksheet

LINK_COLOR = "FF0000FF"
WARNING_COLOR = "FFFF0000"

SUM_FORMULA_RE = re.compile(r"^=SUM\(\$?([A-Z]{1,3})\$?(\d+):\$?([A-Z]{1,3})\$?(\d+)\)$", re.IGNORECASE)
HYPERLINK_TEXT_RE = re.compile(r'^=HYPERLINK\(\s*"[^"]*"\s*[,;]\s*"([^"]*)"\s*\)$', re.IGNORECASE)


# ── Styles ─────────────────────────────────────────────────────────────────────

def copy_cell_style(source, target) -> None:
    """Copy font, alignment, border, fill, number format and protection."""
    if not source.has_style:
        return
    target.font = copy(source.font)
    target.alignment = copy(source.alignment)
    target.border = copy(source.border)
    target.fill = copy(source.fill)
    target.number_format = source.number_format
    target.protection = copy(source.protection)


def clone_row_style(ws: Worksheet, source_row: int, target_row: int, *, max_column: int | None = None) -> None:
    if source_row == target_row:
        return
    height = ws.row_dimensions[source_row].height
    if height:
        ws.row_dimensions[target_row].height = height
    last = max_column or ws.max_column
    for col in range(1, last + 1):
        source = ws.cell(row=source_row, column=col)
        if isinstance(source, MergedCell):
            continue
        copy_cell_style(source, ws.cell(row=target_row, column=col))


def set_font_color(cell, argb: str) -> None:
    """Recolor ``cell`` keeping every other font attribute."""
    font: Font = copy(cell.font)
    font.color = Color(rgb=argb)
    cell.font = font


def apply_link_style(cell) -> None:
    font: Font = copy(cell.font)
    font.underline = "single"
    font.color = Color(rgb=LINK_COLOR)
    cell.font = font


def write_text(cell, text: str) -> None:
    """Store ``text`` as a string even when it starts with ``=``."""
    cell.value = text
    if isinstance(text, str) and text.startswith("="):
        cell.data_type = "s"


# ── Row insertion ──────────────────────────────────────────────────────────────

def insert_rows_preserving_layout(ws: Worksheet, index: int, amount: int) -> None:
    """
    Insert ``amount`` blank rows before ``index``.

    ``Worksheet.insert_rows`` moves cells only; merged ranges and row heights
    at or below ``index`` are shifted here so trailing template rows keep
    their layout.
    """
    if amount <= 0:
        return
    moved_ranges = [merged.coord for merged in ws.merged_cells.ranges if merged.min_row >= index]
    for coord in moved_ranges:
        ws.unmerge_cells(coord)
    heights = {
        row: dimension.height
        for row, dimension in list(ws.row_dimensions.items())
        if row >= index and dimension.height
    }

    ws.insert_rows(index, amount)

    for row in heights:
        ws.row_dimensions[row].height = None
    for row, height in heights.items():
        ws.row_dimensions[row + amount].height = height
    for coord in moved_ranges:
        shifted = CellRange(coord)
        shifted.shift(row_shift=amount)
        ws.merge_cells(shifted.coord)


# ── Displayed text ─────────────────────────────────────────────────────────────

def format_number(value: float, number_format: str) -> str:
    fmt = number_format or "General"
    if "#,##0" in fmt:
        decimals = 0
        match = re.search(r"#,##0\.(0+)", fmt)
        if match:
            decimals = len(match.group(1))
        text = f"{abs(value):,.{decimals}f}"
        if "$" in fmt:
            text = "$" + text
        return ("-" + text) if value < 0 else text
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_date(value: date, number_format: str) -> str:
    fmt = (number_format or "").lower()
    if "mmm" in fmt:
        return value.strftime("%d-%b-%y")
    if isinstance(value, datetime) and value.time() != datetime.min.time():
        return value.isoformat(sep=" ")
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def _sum_range(ws: Worksheet, match: re.Match) -> float:
    first_col, first_row, last_col, last_row = match.groups()
    total = 0.0
    for row in ws.iter_rows(
        min_row=int(first_row),
        max_row=int(last_row),
        min_col=column_index_from_string(first_col.upper()),
        max_col=column_index_from_string(last_col.upper()),
        values_only=True,
    ):
        for value in row:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                total += value
    return total


def displayed_text(ws: Worksheet, cell) -> str:
    """Approximate the text Excel renders for ``cell``."""
    value = cell.value
    if value is None:
        return ""
    if isinstance(value, CellRichText):
        return str(value)
    if isinstance(value, str):
        if cell.data_type == "f":
            hyperlink = HYPERLINK_TEXT_RE.match(value)
            if hyperlink:
                return hyperlink.group(1)
            total = SUM_FORMULA_RE.match(value)
            if total:
                return format_number(_sum_range(ws, total), cell.number_format)
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date)):
        return format_date(value, cell.number_format)
    if isinstance(value, (int, float)):
        return format_number(value, cell.number_format)
    return str(value)


# ── Auto-fit ───────────────────────────────────────────────────────────────────

def autofit_columns(
    ws: Worksheet,
    columns: Iterable[int],
    *,
    min_width: float = 10,
    max_width: float = 60,
    pad: float = 2,
    per_column: Mapping[int, Mapping[str, float]] | None = None,
) -> dict[int, float]:
    """Set each column's width to its longest rendered text plus padding, clamped."""
    widths: dict[int, float] = {}
    for col in columns:
        limits = dict((per_column or {}).get(col, {}))
        low = limits.get("min", min_width)
        high = limits.get("max", max_width)
        padding = limits.get("pad", pad)
        width = low
        for (cell,) in ws.iter_rows(min_col=col, max_col=col):
            if isinstance(cell, MergedCell) or cell.value is None:
                continue
            width = max(width, len(displayed_text(ws, cell)) + padding)
        width = min(max(low, width), high)
        ws.column_dimensions[get_column_letter(col)].width = width
        widths[col] = width
    return widths
