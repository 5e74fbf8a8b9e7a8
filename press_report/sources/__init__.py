"""Source extractors that normalize exports into canonical rows."""

from press_report.sources.delimited import DelimitedExtract, extract_delimited, extract_delimited_bytes
from press_report.sources.spreadsheet import SpreadsheetExtract, extract_spreadsheet

__all__ = [
    "DelimitedExtract",
    "SpreadsheetExtract",
    "extract_delimited",
    "extract_delimited_bytes",
    "extract_spreadsheet",
]
