"""Exception types raised for structural failures.

Row-level and source-level problems are reported as ``ExtractIssue`` values
instead of exceptions; only failures that must abort a build raise.
"""

from __future__ import annotations


class ReportError(Exception):
    """Base class for every structural failure in the pipeline."""

    stage = "report"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {self.args[0]}"


class SourceError(ReportError):
    stage = "extract"


class TemplateError(ReportError):
    stage = "template"


class WorkbookError(ReportError):
    stage = "assemble"


class ConfigError(ReportError):
    stage = "config"
