"""
Versioned JSON payloads for press-report commands.

Every ``--json`` payload has the same three keys::

    {"contract": {...}, "result": {...}, "run_summary": {...}}

``run_summary`` describes one run in report terms: which source files played
which role, the workbook and sheet written, and row, merge and issue counts.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

TOOL_NAME = "press-report"

CONTRACT_VERSIONS = {
    "press_report.extract": "1.1.0",
    "press_report.build": "1.1.0",
    "press_report.aggregate": "1.1.0",
}

SOURCE_ROLES = ("primary", "secondary", "baseline", "workbook")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def run_status(issue_count: int) -> str:
    return "issues" if issue_count else "ok"


def build_run_summary(
    *,
    command: str,
    sources: Mapping[str, Path | str | None],
    rows: int,
    issues: Sequence[str] = (),
    merged: int | None = None,
    output_path: Path | None = None,
    sheet_name: str | None = None,
    source_sheets: int | None = None,
) -> dict[str, Any]:
    unknown = set(sources) - set(SOURCE_ROLES)
    if unknown:
        raise KeyError(f"Unknown source roles: {', '.join(sorted(unknown))}")
    counts: dict[str, int] = {"rows": rows, "issues": len(issues)}
    if merged is not None:
        counts["merged"] = merged
    if source_sheets is not None:
        counts["source_sheets"] = source_sheets
    return {
        "tool": TOOL_NAME,
        "command": command,
        "status": run_status(len(issues)),
        "generated_at": utc_now_iso(),
        "sources": {role: str(path) for role, path in sources.items() if path},
        "output": {
            "file": str(output_path) if output_path else None,
            "sheet": sheet_name,
        },
        "counts": counts,
        "issues": list(issues),
    }


def build_payload(name: str, result: Mapping[str, Any], run_summary: Mapping[str, Any], **extra: Any) -> dict[str, Any]:
    payload = {
        "contract": build_contract(name),
        "result": dict(result),
        "run_summary": dict(run_summary),
    }
    payload.update(extra)
    return payload
