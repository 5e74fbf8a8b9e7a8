"""pandas views of extracted rows and issues, for previews and CSV exports."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from press_report.rows import ALL_FIELDS, CanonicalRow, ExtractIssue

ISSUE_COLUMNS = ["source", "row", "field", "message", "raw_value"]


def rows_frame(rows: Iterable[CanonicalRow]) -> pd.DataFrame:
    return pd.DataFrame([row.to_dict() for row in rows], columns=list(ALL_FIELDS))


def issues_frame(issues: Iterable[ExtractIssue], source: str | None = None) -> pd.DataFrame:
    records = []
    for issue in issues:
        record = issue.to_dict()
        record["source"] = source
        records.append(record)
    return pd.DataFrame(records, columns=ISSUE_COLUMNS)


def write_issues_csv(path: Path, frames: Iterable[pd.DataFrame]) -> Path:
    parts = [frame for frame in frames if not frame.empty]
    combined = pd.concat(parts, ignore_index=True) if parts else pd.DataFrame(columns=ISSUE_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    combined.to_csv(path, index=False)
    return path
