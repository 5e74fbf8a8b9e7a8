"""
End-to-end report run: extract both sources, reconcile, assemble.

``run_report`` is what the CLI and the web front end call. The secondary
source is optional and its failures never abort a run; they are reported as
an issue at row 0 and the primary rows are used on their own.
"""

from __future__ import annotations

import itertools
import re
import threading
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from press_report.config import ReportConfig
from press_report.errors import SourceError
from press_report.merge import MergeResult, merge_sources
from press_report.rows import ExtractIssue
from press_report.sources import DelimitedExtract, SpreadsheetExtract, extract_delimited_bytes, extract_spreadsheet
from press_report.workbook import BuiltReport, build_report
from press_report.workbook.assembler import DEFAULT_OUTPUT_NAME, ensure_xlsx_name
from press_report.workbook.template import DEFAULT_SHEET_NAME

SHEET_NUMBER_RE = re.compile(r"(^|\D)(\d{1,4})[_\-\s]")


def suggest_sheet_name(filename: str | None, default: str = DEFAULT_SHEET_NAME) -> str:
    """First 1-4 digit prefix in the file name (``12_coverage.csv`` -> ``12``)."""
    match = SHEET_NUMBER_RE.search(PurePath(filename or "").name)
    return match.group(2) if match else default


def default_output_name(baseline_name: str | None) -> str:
    if baseline_name:
        stem = re.sub(r"\.xlsx$", "", PurePath(baseline_name).name, flags=re.IGNORECASE)
        if stem:
            return ensure_xlsx_name(stem)
    return DEFAULT_OUTPUT_NAME


class RequestGate:
    """
    Hands out increasing request tokens and accepts only the newest result.

    A caller takes a token with ``begin()`` before starting an extraction and
    applies the result only if ``commit(token, ...)`` returns True. Results
    from superseded requests are dropped.
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._current = 0
        self._lock = threading.Lock()
        self.value: Any = None

    def begin(self) -> int:
        with self._lock:
            self._current = next(self._counter)
            return self._current

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._current

    def commit(self, token: int, value: Any) -> bool:
        with self._lock:
            if token != self._current:
                return False
            self.value = value
            return True


@dataclass
class PipelineResult:
    primary: DelimitedExtract
    secondary: SpreadsheetExtract | None
    merged: MergeResult
    report: BuiltReport | None = None
    secondary_issues: list[ExtractIssue] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return len(self.primary.issues) + len(self.secondary_issues)

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary.to_dict(),
            "secondary": self.secondary.to_dict() if self.secondary else None,
            "secondary_issues": [issue.to_dict() for issue in self.secondary_issues],
            "row_count": len(self.merged.rows),
            "merged_count": self.merged.merged_count,
            "style_warnings": self.merged.style_warnings.to_dict(),
            "report": self.report.to_dict() if self.report else None,
        }


def extract_secondary_safely(
    raw: bytes | None,
    filename: str | None,
    config: ReportConfig,
) -> tuple[SpreadsheetExtract | None, list[ExtractIssue]]:
    if not raw:
        return None, []
    try:
        extract = extract_spreadsheet(
            raw,
            filename,
            ad_eq_ratio=config.ad_eq_ratio,
            locators=config.locators(),
        )
    except (SourceError, ImportError) as exc:
        return None, [ExtractIssue(row=0, message=f"Secondary source could not be read: {exc}")]
    return extract, list(extract.issues)


def run_report(
    primary: bytes,
    *,
    primary_name: str | None = None,
    secondary: bytes | None = None,
    secondary_name: str | None = None,
    baseline: bytes | None = None,
    baseline_name: str | None = None,
    sheet_name: str | None = None,
    output_filename: str | None = None,
    config: ReportConfig | None = None,
    build: bool = True,
) -> PipelineResult:
    """
    Extract, merge and (unless ``build`` is False) assemble a report.

    Raises ``SourceError`` for an unusable primary source and
    ``TemplateError``/``WorkbookError`` for structural assembly failures.
    """
    config = config or ReportConfig()
    primary_extract = extract_delimited_bytes(primary)
    secondary_extract, secondary_issues = extract_secondary_safely(secondary, secondary_name, config)

    merged = merge_sources(
        primary_extract.rows,
        secondary_extract.rows if secondary_extract else [],
        secondary_extract.invalid_date_urls if secondary_extract else (),
        tracking_hosts=tuple(config.tracking_hosts),
    )
    result = PipelineResult(
        primary=primary_extract,
        secondary=secondary_extract,
        merged=merged,
        secondary_issues=secondary_issues,
    )
    if not build:
        return result

    target = (sheet_name or "").strip() or suggest_sheet_name(primary_name, config.sheet_name)
    options = config.build_options(
        sheet_name=target,
        baseline=baseline,
        style_warnings=merged.style_warnings,
        headline=secondary_extract.headline if secondary_extract else None,
        number_prefix=target if target.isdigit() else None,
        output_filename=output_filename or default_output_name(baseline_name if baseline else None),
    )
    if not merged.rows:
        raise SourceError("No rows could be extracted from the sources")
    result.report = build_report(merged.rows, options)
    return result
