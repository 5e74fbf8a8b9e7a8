"""
Primary source: a delimited-text media monitoring export.

Row 1 holds headers in any order; columns are recognized through the header
synonym table and unrecognized columns are ignored. Every successfully
extracted row has all seven fields set, so rows come out fully typed. Rows
keep their source order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from press_report.errors import SourceError
from press_report.headers import resolve_headers
from press_report.rows import (
    ALL_FIELDS,
    HEADER_SYNONYMS,
    UNRESOLVED,
    CanonicalRow,
    ExtractIssue,
)
from press_report.text_table import decode_text, detect_delimiter, is_blank_row, parse_delimited
from press_report.values import parse_flexible_date, parse_number

FIELD_LABELS = {"ad_eq": "adEq"}


@dataclass
class DelimitedExtract:
    rows: list[CanonicalRow] = field(default_factory=list)
    issues: list[ExtractIssue] = field(default_factory=list)
    unmapped_headers: list[str] = field(default_factory=list)
    header_map: dict[str, str | None] = field(default_factory=dict)
    delimiter: str = ","

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_count": len(self.rows),
            "issue_count": len(self.issues),
            "issues": [issue.to_dict() for issue in self.issues],
            "unmapped_headers": list(self.unmapped_headers),
            "header_map": dict(self.header_map),
            "delimiter": self.delimiter,
        }


def _field_label(name: str) -> str:
    return FIELD_LABELS.get(name, name)


def _coerce_cell(field_name: str, raw: str, row_number: int, draft: dict, issues: list[ExtractIssue]) -> None:
    value = raw.strip()
    if field_name in ("readership", "ad_eq"):
        if not value:
            return
        number = parse_number(value)
        if number is None:
            issues.append(
                ExtractIssue(
                    row=row_number,
                    field=field_name,
                    message=f"Invalid {_field_label(field_name)} number",
                    raw_value=value,
                )
            )
            return
        draft[field_name] = number
    elif field_name == "published":
        parsed = parse_flexible_date(value)
        if parsed is None:
            issues.append(
                ExtractIssue(
                    row=row_number,
                    field="published",
                    message="Missing or invalid published date",
                    raw_value=value,
                )
            )
            draft["published"] = UNRESOLVED
        else:
            draft["published"] = parsed
    elif value:
        draft[field_name] = value


def extract_delimited(
    text: str,
    *,
    delimiter: str | None = None,
    synonyms: Mapping[str, Sequence[str]] = HEADER_SYNONYMS,
) -> DelimitedExtract:
    """Extract canonical rows and issues from delimited ``text``."""
    delimiter = delimiter or detect_delimiter(text)
    matrix = parse_delimited(text, delimiter)
    if not matrix or all(is_blank_row(row) for row in matrix):
        raise SourceError("Primary source is empty")

    headers = matrix[0]
    resolution = resolve_headers(headers, synonyms)
    result = DelimitedExtract(
        unmapped_headers=list(resolution.unmapped),
        header_map=dict(resolution.by_label),
        delimiter=delimiter,
    )

    for offset, cells in enumerate(matrix[1:], start=2):
        if is_blank_row(cells):
            continue
        draft: dict[str, Any] = {}
        for column, raw in enumerate(cells):
            field_name = resolution.by_index.get(column)
            if field_name:
                _coerce_cell(field_name, raw, offset, draft, result.issues)

        missing = [name for name in ALL_FIELDS if name not in draft]
        if missing:
            result.issues.append(
                ExtractIssue(
                    row=offset,
                    message="Missing required fields: " + ", ".join(_field_label(name) for name in missing),
                )
            )
            continue
        result.rows.append(CanonicalRow(**draft))
    return result


def extract_delimited_bytes(raw: bytes, **kwargs: Any) -> DelimitedExtract:
    """Decode uploaded bytes, sniff the delimiter and extract."""
    if not raw or not raw.strip():
        raise SourceError("Primary source is empty")
    return extract_delimited(decode_text(raw), **kwargs)
