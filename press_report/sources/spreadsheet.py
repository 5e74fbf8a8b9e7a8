"""
Secondary source: a newswire distribution export in spreadsheet form.

The header row sits at no fixed position. It is located by strategies tried
in priority order (see ``DEFAULT_LOCATORS``). Data runs from the row after
the header until a fully blank row or a trailer row. Missing values become
``UNRESOLVED``; readership and ad value are estimated when the export omits
them.
"""

from __future__ import annotations

import io
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol

from openpyxl import load_workbook

from press_report.errors import SourceError
from press_report.headers import HeaderResolution, normalize_label, resolve_headers
from press_report.rows import HEADER_SYNONYMS, UNRESOLVED, CanonicalRow, ExtractIssue
from press_report.values import (
    cell_text,
    coerce_cell_date,
    collapse_whitespace,
    date_from_url,
    parse_number,
    round_half_up,
)

AD_EQ_RATIO = 3

EXPECTED_HEADERS = (
    "Release ID",
    "Date",
    "Outlet",
    "Headline",
    "Potential Audience",
    "Location",
    "URL",
)

# (row, column), 0-based into the sheet matrix: B1 and B4.
HEADLINE_CELL = (0, 1)
ANCHOR_CELL = (3, 1)

TRAILER_RE = re.compile(
    r"^\s*(grand\s+total|total|end\s+of\s+report|powered\s+by|copyright|©|source:|disclaimer)\b",
    re.IGNORECASE,
)

OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
ZIP_MAGIC = b"PK\x03\x04"


@dataclass
class SpreadsheetExtract:
    rows: list[CanonicalRow] = field(default_factory=list)
    issues: list[ExtractIssue] = field(default_factory=list)
    invalid_date_urls: set[str] = field(default_factory=set)
    headline: str | None = None
    header_row: int | None = None
    strategy: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_count": len(self.rows),
            "issue_count": len(self.issues),
            "issues": [issue.to_dict() for issue in self.issues],
            "invalid_date_urls": sorted(self.invalid_date_urls),
            "headline": self.headline,
            "header_row": None if self.header_row is None else self.header_row + 1,
            "strategy": self.strategy,
        }


# ══════════════════════════════════════════════════════════════════════════════
# READING
# ══════════════════════════════════════════════════════════════════════════════

def _read_xlsx_matrix(raw: bytes) -> list[list[Any]]:
    workbook = load_workbook(io.BytesIO(raw), data_only=True)
    if not workbook.worksheets:
        return []
    sheet = workbook.worksheets[0]
    return [list(row) for row in sheet.iter_rows(values_only=True)]


def _read_xls_matrix(raw: bytes) -> list[list[Any]]:
    try:
        import xlrd
    except ImportError:
        raise ImportError(".xls files require xlrd — run: pip install xlrd")

    book = xlrd.open_workbook(file_contents=raw)
    if book.nsheets == 0:
        return []
    sheet = book.sheet_by_index(0)
    matrix: list[list[Any]] = []
    for row_idx in range(sheet.nrows):
        values: list[Any] = []
        for col_idx in range(sheet.ncols):
            cell = sheet.cell(row_idx, col_idx)
            if cell.ctype == xlrd.XL_CELL_DATE:
                values.append(xlrd.xldate.xldate_as_datetime(cell.value, book.datemode))
            elif cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                values.append(None)
            else:
                values.append(cell.value)
        matrix.append(values)
    return matrix


def read_sheet_matrix(raw: bytes, filename: str | None = None) -> list[list[Any]]:
    """Row-major raw values of the first worksheet of an .xls/.xlsx document."""
    suffix = (filename or "").lower().rsplit(".", 1)[-1] if filename and "." in filename else ""
    is_legacy = raw.startswith(OLE_MAGIC) or (suffix == "xls" and not raw.startswith(ZIP_MAGIC))
    try:
        return _read_xls_matrix(raw) if is_legacy else _read_xlsx_matrix(raw)
    except ImportError:
        raise
    except Exception as exc:
        raise SourceError(
            f"Failed to read secondary spreadsheet (ensure .xls/.xlsx is valid): {exc}"
        ) from exc


# ══════════════════════════════════════════════════════════════════════════════
# HEADER LOCATION
# ══════════════════════════════════════════════════════════════════════════════

def _cell(matrix: list[list[Any]], row: int, col: int) -> Any:
    if row >= len(matrix) or col >= len(matrix[row]):
        return None
    return matrix[row][col]


def _trimmed_labels(row: Sequence[Any]) -> list[str]:
    labels = [normalize_label(value) for value in row]
    while labels and not labels[-1]:
        labels.pop()
    return labels


@dataclass(frozen=True)
class HeaderLocation:
    header_row: int
    data_start: int
    strategy: str


class HeaderLocator(Protocol):
    name: str

    def locate(self, matrix: list[list[Any]]) -> HeaderLocation | None: ...


@dataclass
class ExpectedSequenceLocator:
    """Find the row whose labels equal a known header sequence."""

    expected: Sequence[str] = EXPECTED_HEADERS
    name: str = "expected-sequence"

    def locate(self, matrix: list[list[Any]]) -> HeaderLocation | None:
        target = [normalize_label(label) for label in self.expected]
        for index, row in enumerate(matrix):
            if _trimmed_labels(row) == target:
                return HeaderLocation(index, index + 1, self.name)
        return None


@dataclass
class AnchorCellLocator:
    """
    Use the value of a fixed anchor cell as the first data row's ID.

    The first row whose first column equals the anchor value starts the data;
    the row above it holds the headers.
    """

    anchor: tuple[int, int] = ANCHOR_CELL
    name: str = "anchor-cell"

    def locate(self, matrix: list[list[Any]]) -> HeaderLocation | None:
        anchor_value = cell_text(_cell(matrix, *self.anchor))
        if not anchor_value:
            return None
        for index, row in enumerate(matrix):
            if index == 0:
                continue
            if cell_text(_cell(matrix, index, 0)) == anchor_value:
                return HeaderLocation(index - 1, index, self.name)
        return None


DEFAULT_LOCATORS: tuple[HeaderLocator, ...] = (ExpectedSequenceLocator(), AnchorCellLocator())


def locate_header(matrix: list[list[Any]], locators: Sequence[HeaderLocator] = DEFAULT_LOCATORS) -> HeaderLocation:
    for locator in locators:
        found = locator.locate(matrix)
        if found is not None:
            return found
    return HeaderLocation(0, 1, "first-row")


def is_blank_cells(row: Sequence[Any]) -> bool:
    return all(cell_text(value) == "" for value in row)


def is_trailer_row(row: Sequence[Any]) -> bool:
    first = next((cell_text(value) for value in row if cell_text(value)), "")
    return bool(TRAILER_RE.match(first))


def data_end(matrix: list[list[Any]], start: int) -> int:
    """Exclusive end of the data region that begins at ``start``."""
    for index in range(start, len(matrix)):
        row = matrix[index]
        if is_blank_cells(row) or is_trailer_row(row):
            return index
    return len(matrix)


# ══════════════════════════════════════════════════════════════════════════════
# FIELD RESOLUTION
# ══════════════════════════════════════════════════════════════════════════════

def largest_numeric_cell(values: Sequence[Any]) -> int | float | None:
    """
    Approximate readership as the largest positive number anywhere in the row.

    This is a heuristic for exports that carry audience figures under an
    unrecognized header; it picks IDs or other large numbers when those are
    bigger than the audience figure.
    """
    candidates = []
    for value in values:
        if isinstance(value, date):
            continue
        number = parse_number(value)
        if number is not None and number > 0:
            candidates.append(number)
    return max(candidates) if candidates else None


def derive_ad_eq(readership: int | float, ratio: float = AD_EQ_RATIO) -> int:
    return round_half_up(readership / ratio)


def _text_or_unresolved(value: Any):
    text = cell_text(value)
    return text if text else UNRESOLVED


def _row_values(row: Sequence[Any], resolution: HeaderResolution) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for column, field_name in sorted(resolution.by_index.items()):
        if field_name and field_name not in record and column < len(row):
            record[field_name] = row[column]
    return record


def extract_spreadsheet(
    raw: bytes,
    filename: str | None = None,
    *,
    ad_eq_ratio: float = AD_EQ_RATIO,
    locators: Sequence[HeaderLocator] = DEFAULT_LOCATORS,
    synonyms: Mapping[str, Sequence[str]] = HEADER_SYNONYMS,
) -> SpreadsheetExtract:
    """Extract canonical rows from the first worksheet of ``raw``."""
    matrix = read_sheet_matrix(raw, filename)
    return extract_matrix(matrix, ad_eq_ratio=ad_eq_ratio, locators=locators, synonyms=synonyms)


def extract_matrix(
    matrix: list[list[Any]],
    *,
    ad_eq_ratio: float = AD_EQ_RATIO,
    locators: Sequence[HeaderLocator] = DEFAULT_LOCATORS,
    synonyms: Mapping[str, Sequence[str]] = HEADER_SYNONYMS,
) -> SpreadsheetExtract:
    result = SpreadsheetExtract()
    if not matrix or all(is_blank_cells(row) for row in matrix):
        result.issues.append(ExtractIssue(row=0, message="Empty sheet"))
        return result

    headline = cell_text(_cell(matrix, *HEADLINE_CELL))
    result.headline = headline or None

    location = locate_header(matrix, locators)
    result.header_row = location.header_row
    result.strategy = location.strategy
    resolution = resolve_headers(matrix[location.header_row], synonyms)
    end = data_end(matrix, location.data_start)

    for index in range(location.data_start, end):
        row = matrix[index]
        record = _row_values(row, resolution)

        url = cell_text(record.get("url")) or None

        readership = parse_number(record.get("readership"))
        if readership is None:
            readership = largest_numeric_cell(row)

        ad_eq = parse_number(record.get("ad_eq"))
        if ad_eq is None and readership is not None:
            ad_eq = derive_ad_eq(readership, ad_eq_ratio)

        published = coerce_cell_date(record.get("published"))
        if published is None:
            published = date_from_url(url)
        if published is None and url:
            result.invalid_date_urls.add(url)

        outlet = _text_or_unresolved(record.get("outlet"))
        title = _text_or_unresolved(record.get("title"))
        base = _text_or_unresolved(collapse_whitespace(cell_text(record.get("base"))))

        if url is None and outlet is UNRESOLVED and title is UNRESOLVED and base is UNRESOLVED:
            continue

        result.rows.append(
            CanonicalRow(
                published=published if published is not None else UNRESOLVED,
                outlet=outlet,
                title=title,
                readership=readership if readership is not None else UNRESOLVED,
                ad_eq=ad_eq if ad_eq is not None else UNRESOLVED,
                base=base,
                url=url,
            )
        )
    return result
