"""
Rebuild the aggregate ``LIST`` sheet from a workbook's numbered sheets.

Every sheet whose name is all digits is read in numeric order, from the data
start row down to the first row without a sequence number. The recovered
rows are written back through the assembler, unsorted, into a fresh
aggregate sheet that replaces any existing one.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.cell.rich_text import CellRichText
from openpyxl.worksheet.worksheet import Worksheet

from press_report.errors import WorkbookError
from press_report.merge import derive_style_warnings
from press_report.rows import (
    FIELD_COLUMNS,
    NUM_PLACEHOLDER,
    SEQUENCE_COLUMN,
    TEXT_PLACEHOLDER,
    UNRESOLVED,
    CanonicalRow,
)
from press_report.urls import HYPERLINK_FORMULA_RE
from press_report.values import coerce_cell_date, parse_number, to_local_date
from press_report.workbook.assembler import BuildOptions, BuiltReport, build_report
from press_report.workbook.template import DATA_START_ROW

AGGREGATE_SHEET_NAME = "LIST"


@dataclass
class AggregateResult:
    report: BuiltReport
    aggregated_row_count: int
    source_sheet_count: int
    rows: list[CanonicalRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "aggregated_row_count": self.aggregated_row_count,
            "source_sheet_count": self.source_sheet_count,
            "report": self.report.to_dict(),
        }


def numeric_sheets(workbook: Workbook) -> list[str]:
    names = [ws.title for ws in workbook.worksheets if ws.title.strip().isdigit()]
    return sorted(names, key=lambda name: int(name.strip()))


def has_sequence_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float):
        return value == value
    if isinstance(value, str):
        return bool(value.strip())
    return True


def plain_text(value: Any) -> str:
    """Displayed text of a cell value, with formula and rich-text wrappers removed."""
    if value is None:
        return ""
    if isinstance(value, CellRichText):
        return str(value).strip()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    match = HYPERLINK_FORMULA_RE.match(text)
    if match:
        return (match.group(2) or match.group(1)).strip()
    return text


# ── Field readers ──────────────────────────────────────────────────────────────
# Each reader takes the stored value and the cached (data-only) value of the
# same cell; the cached value is only consulted for formulas.

def _effective(value: Any, cached: Any) -> Any:
    if isinstance(value, str) and value.startswith("=") and not HYPERLINK_FORMULA_RE.match(value):
        return cached
    return value


def read_published(value: Any, cached: Any = None):
    value = _effective(value, cached)
    if isinstance(value, datetime):
        return to_local_date(value) if value.tzinfo else value.date()
    if isinstance(value, str) and value.strip() in ("", TEXT_PLACEHOLDER):
        return UNRESOLVED
    parsed = coerce_cell_date(value)
    return UNRESOLVED if parsed is None else parsed


def unparsed_date_text(value: Any, cached: Any = None) -> str | None:
    """Displayed text of a date cell that did not parse, or ``None`` for a placeholder."""
    text = plain_text(_effective(value, cached))
    if not text or text == TEXT_PLACEHOLDER:
        return None
    return text


def read_number(value: Any, cached: Any = None):
    """Numeric cell value; ``(1,234)`` reads as ``-1234``; placeholders stay unresolved."""
    value = _effective(value, cached)
    if isinstance(value, str):
        text = value.strip()
        if not text or text.upper() == NUM_PLACEHOLDER:
            return UNRESOLVED
        negative = text.startswith("(") and text.endswith(")")
        number = parse_number(text.strip("()"))
        if number is None:
            return UNRESOLVED
        return -number if negative else number
    number = parse_number(value)
    return UNRESOLVED if number is None else number


def read_text(value: Any, cached: Any = None):
    text = plain_text(_effective(value, cached))
    if not text or text == TEXT_PLACEHOLDER:
        return UNRESOLVED
    return text


def read_title(cell, cached: Any = None) -> tuple[Any, str | None]:
    """Title text and the URL it links to, from a hyperlink or a HYPERLINK formula."""
    url = None
    if cell.hyperlink is not None and cell.hyperlink.target:
        url = cell.hyperlink.target
    elif isinstance(cell.value, str):
        match = HYPERLINK_FORMULA_RE.match(cell.value.strip())
        if match:
            url = match.group(1).strip() or None
    return read_text(cell.value, cached), url


def read_sheet_rows(ws: Worksheet, cached_ws: Worksheet | None, start_row: int = DATA_START_ROW) -> list[CanonicalRow]:
    def cached(row: int, col: int) -> Any:
        # Text cells that start with "=" read back as themselves.
        cell = ws.cell(row=row, column=col)
        if cell.data_type != "f":
            return cell.value
        return None if cached_ws is None else cached_ws.cell(row=row, column=col).value

    rows: list[CanonicalRow] = []
    row = start_row
    while row <= ws.max_row:
        sequence = _effective(ws.cell(row=row, column=SEQUENCE_COLUMN).value, cached(row, SEQUENCE_COLUMN))
        if not has_sequence_value(sequence):
            break

        def stored(name: str) -> tuple[Any, Any]:
            col = FIELD_COLUMNS[name]
            return ws.cell(row=row, column=col).value, cached(row, col)

        title, url = read_title(
            ws.cell(row=row, column=FIELD_COLUMNS["title"]),
            cached(row, FIELD_COLUMNS["title"]),
        )
        published = read_published(*stored("published"))
        rows.append(
            CanonicalRow(
                published=published,
                outlet=read_text(*stored("outlet")),
                title=title,
                readership=read_number(*stored("readership")),
                ad_eq=read_number(*stored("ad_eq")),
                base=read_text(*stored("base")),
                url=url,
                published_text=unparsed_date_text(*stored("published")) if published is UNRESOLVED else None,
            )
        )
        row += 1
    return rows


def _load(document: bytes, **kwargs: Any) -> Workbook:
    try:
        return load_workbook(io.BytesIO(document), **kwargs)
    except Exception as exc:
        raise WorkbookError(f"Workbook could not be read: {exc}") from exc


def rebuild_aggregate(
    document: bytes,
    *,
    sheet_name: str = AGGREGATE_SHEET_NAME,
    data_start_row: int = DATA_START_ROW,
    options: BuildOptions | None = None,
    filename: str | None = None,
) -> AggregateResult:
    """
    Replace the aggregate sheet of ``document`` with the rows of its numbered sheets.

    Raises ``WorkbookError`` when the workbook has no numbered sheets or when
    those sheets hold no data rows.
    """
    target_name = (sheet_name or "").strip() or AGGREGATE_SHEET_NAME
    workbook = _load(document, rich_text=True)
    cached_values = _load(document, data_only=True)

    sources = numeric_sheets(workbook)
    if not sources:
        raise WorkbookError("No numeric-named sheets were found in the workbook")

    rows: list[CanonicalRow] = []
    for name in sources:
        rows.extend(read_sheet_rows(workbook[name], cached_values[name], data_start_row))
    if not rows:
        raise WorkbookError("Numeric sheets do not contain any data rows")

    for ws in list(workbook.worksheets):
        if ws.title.lower() == target_name.lower():
            workbook.remove(ws)
    workbook.active = 0

    buffer = io.BytesIO()
    workbook.save(buffer)

    base = options or BuildOptions()
    report = build_report(
        rows,
        replace(
            base,
            sheet_name=target_name,
            start_row=data_start_row,
            baseline=buffer.getvalue(),
            sort_rows=False,
            style_warnings=derive_style_warnings(rows),
            append_summary=False,
            output_filename=filename or base.output_filename,
        ),
    )
    return AggregateResult(
        report=report,
        aggregated_row_count=len(rows),
        source_sheet_count=len(sources),
        rows=rows,
    )
