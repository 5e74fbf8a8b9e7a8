from __future__ import annotations

import io
import unittest
from datetime import date, datetime

from openpyxl import Workbook

from press_report.errors import SourceError
from press_report.rows import UNRESOLVED
from press_report.sources import extract_spreadsheet
from press_report.sources.spreadsheet import (
    AnchorCellLocator,
    ExpectedSequenceLocator,
    derive_ad_eq,
    extract_matrix,
    largest_numeric_cell,
    locate_header,
)

EXPECTED = ["Release ID", "Date", "Outlet", "Headline", "Potential Audience", "Location", "URL"]


def workbook_bytes(rows: list[list], *, headline: str | None = "Festival Season Opens") -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    if headline is not None:
        ws["B1"] = headline
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def standard_export() -> list[list]:
    return [
        [None],
        ["Distribution report"],
        [],
        EXPECTED,
        [4401, datetime(2025, 1, 2), "Example Times", "Big Launch", 150, "USA", "https://www.example.com/a/"],
        [4402, None, "Wire Digest", "Festival", 60000, "  Singapore \n", "https://wire.example/s?rkey=20250115"],
        [4403, None, "Unknown Outlet", "Preview", 8000, "Malaysia", "https://unknown.example/preview"],
        ["Total", None, None, None, 68150],
        [4404, None, "After Trailer", "Ignored", 1, "X", "https://after.example"],
    ]


class SpreadsheetExtractTests(unittest.TestCase):
    def test_expected_header_sequence(self):
        result = extract_spreadsheet(workbook_bytes(standard_export()), "pickup.xlsx")
        self.assertEqual(result.strategy, "expected-sequence")
        self.assertEqual(result.header_row, 3)
        self.assertEqual(result.headline, "Festival Season Opens")
        self.assertEqual([row.outlet for row in result.rows], ["Example Times", "Wire Digest", "Unknown Outlet"])

    def test_dates_from_cells_and_url_parameters(self):
        rows = extract_spreadsheet(workbook_bytes(standard_export())).rows
        self.assertEqual(rows[0].published, date(2025, 1, 2))
        self.assertEqual(rows[1].published, date(2025, 1, 15))
        self.assertIs(rows[2].published, UNRESOLVED)

    def test_undated_rows_are_recorded_as_invalid_date_urls(self):
        result = extract_spreadsheet(workbook_bytes(standard_export()))
        self.assertEqual(result.invalid_date_urls, {"https://unknown.example/preview"})

    def test_ad_eq_derived_from_readership(self):
        rows = extract_spreadsheet(workbook_bytes(standard_export())).rows
        self.assertEqual(rows[0].readership, 150)
        self.assertEqual(rows[0].ad_eq, 50)
        self.assertEqual(rows[1].ad_eq, 20000)
        self.assertEqual(rows[2].ad_eq, 2667)

    def test_custom_ad_eq_ratio(self):
        rows = extract_spreadsheet(workbook_bytes(standard_export()), ad_eq_ratio=2).rows
        self.assertEqual(rows[0].ad_eq, 75)

    def test_base_whitespace_collapsed(self):
        rows = extract_spreadsheet(workbook_bytes(standard_export())).rows
        self.assertEqual(rows[1].base, "Singapore")

    def test_anchor_cell_fallback(self):
        rows = [
            ["Coverage"],
            [],
            [],
            ["Start", 9001],
            [],
            ["ID", "Published", "Outlet", "Title", "Potential Audience", "Base", "Link"],
            [9001, "2025-03-01", "Harbour Herald", "Quiet Mention", 42000, "Thailand", "https://hh.example/q"],
        ]
        result = extract_spreadsheet(workbook_bytes(rows, headline=None))
        self.assertEqual(result.strategy, "anchor-cell")
        self.assertEqual(result.header_row, 5)
        self.assertEqual(len(result.rows), 1)
        self.assertEqual(result.rows[0].title, "Quiet Mention")
        self.assertEqual(result.rows[0].url, "https://hh.example/q")

    def test_first_row_fallback_when_no_strategy_matches(self):
        matrix = [["Outlet", "URL"], ["Wire", "https://w.example"]]
        location = locate_header(matrix, (ExpectedSequenceLocator(), AnchorCellLocator()))
        self.assertEqual((location.header_row, location.data_start, location.strategy), (0, 1, "first-row"))

    def test_missing_values_become_unresolved(self):
        rows = [EXPECTED, [1, None, None, "Only Title", None, None, "https://a.example"]]
        row = extract_matrix(rows).rows[0]
        self.assertIs(row.outlet, UNRESOLVED)
        self.assertIs(row.base, UNRESOLVED)
        self.assertEqual(row.readership, 1)
        self.assertEqual(row.ad_eq, 0)

    def test_rows_without_content_are_skipped(self):
        rows = [EXPECTED, [5, None, None, None, 100, None, None]]
        self.assertEqual(extract_matrix(rows).rows, [])

    def test_largest_number_heuristic_can_pick_the_release_id(self):
        # No recognized audience column: the fallback takes the largest number
        # in the row, which here is the release ID rather than the audience.
        rows = [
            ["Release ID", "Date", "Outlet", "Headline", "Reach", "Location", "URL"],
            [880000, "2025-01-05", "Wire", "Story", 5000, "UK", "https://w.example/s"],
        ]
        row = extract_matrix(rows).rows[0]
        self.assertEqual(row.readership, 880000)
        self.assertEqual(largest_numeric_cell([None, "12", 7, datetime(2025, 1, 1), -50]), 12)
        self.assertIsNone(largest_numeric_cell(["a", None]))

    def test_empty_sheet_is_an_issue_not_an_error(self):
        result = extract_spreadsheet(workbook_bytes([], headline=None))
        self.assertEqual(result.rows, [])
        self.assertEqual(result.issues[0].message, "Empty sheet")
        self.assertEqual(result.issues[0].row, 0)

    def test_unreadable_bytes_raise_source_error(self):
        with self.assertRaises(SourceError):
            extract_spreadsheet(b"this is not a workbook", "broken.xlsx")

    def test_derive_ad_eq_rounds_half_up(self):
        self.assertEqual(derive_ad_eq(50), 17)
        self.assertEqual(derive_ad_eq(1.5), 1)
        self.assertEqual(derive_ad_eq(7.5), 3)


if __name__ == "__main__":
    unittest.main()
