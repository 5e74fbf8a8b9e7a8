"""Spreadsheet assembly and reconstruction of coverage reports."""

from press_report.workbook.assembler import BuildOptions, BuiltReport, build_report
from press_report.workbook.reconstruct import AggregateResult, rebuild_aggregate

__all__ = [
    "AggregateResult",
    "BuildOptions",
    "BuiltReport",
    "build_report",
    "rebuild_aggregate",
]
