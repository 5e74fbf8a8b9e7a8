from __future__ import annotations

import io
import unittest
from datetime import date

from openpyxl import Workbook, load_workbook

from press_report.errors import WorkbookError
from press_report.rows import UNRESOLVED, CanonicalRow
from press_report.workbook import BuildOptions, build_report, rebuild_aggregate
from press_report.workbook.reconstruct import has_sequence_value, numeric_sheets, read_number, read_title


def make_row(index: int, **overrides) -> CanonicalRow:
    values = {
        "published": date(2025, 2, index),
        "outlet": f"Outlet {index}",
        "title": f"Story {index}",
        "readership": 1000 * index,
        "ad_eq": 333 * index,
        "base": "Thailand",
        "url": f"https://news.example/{index}",
    }
    values.update(overrides)
    return CanonicalRow(**values)


def two_sheet_workbook(first: list[CanonicalRow], second: list[CanonicalRow]) -> bytes:
    """Sheet "10" built first, then sheet "2" appended, plus a stale "list" sheet."""
    ten = build_report(first, BuildOptions(sheet_name="10"))
    both = build_report(second, BuildOptions(sheet_name="2", baseline=ten.content))
    wb = load_workbook(io.BytesIO(both.content))
    wb.create_sheet("list")["A3"] = "stale"
    wb.create_sheet("Notes")
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class RebuildAggregateTests(unittest.TestCase):
    def test_round_trip_preserves_rows(self):
        rows = [make_row(1), make_row(2), make_row(3, url=None)]
        built = build_report(rows, BuildOptions(sheet_name="1"))
        result = rebuild_aggregate(built.content)
        self.assertEqual(result.aggregated_row_count, 3)
        self.assertEqual(result.source_sheet_count, 1)
        for original, recovered in zip(rows, result.rows):
            with self.subTest(title=original.title):
                self.assertEqual(recovered.title, original.title)
                self.assertEqual(recovered.url, original.url)
                self.assertEqual(recovered.outlet, original.outlet)
                self.assertEqual(recovered.readership, original.readership)
                self.assertEqual(recovered.ad_eq, original.ad_eq)
                self.assertEqual(recovered.published, original.published)

    def test_text_starting_with_equals_round_trips_as_text(self):
        rows = [make_row(1, outlet="=Tech Daily", title="=Launch Day", base="=Global", url="https://a.example/1")]
        built = build_report(rows, BuildOptions(sheet_name="1"))
        ws = load_workbook(io.BytesIO(built.content))["1"]
        self.assertEqual((ws["C3"].data_type, ws["C3"].value), ("s", "=Tech Daily"))
        self.assertEqual((ws["D3"].data_type, ws["D3"].value), ("s", "=Launch Day"))

        result = rebuild_aggregate(built.content)
        recovered = result.rows[0]
        self.assertEqual(recovered.outlet, "=Tech Daily")
        self.assertEqual(recovered.title, "=Launch Day")
        self.assertEqual(recovered.base, "=Global")
        self.assertEqual(recovered.url, "https://a.example/1")
        listing = load_workbook(io.BytesIO(result.report.content))["LIST"]
        self.assertEqual(listing["D3"].data_type, "s")

    def test_sheets_are_read_in_numeric_order_and_list_is_replaced(self):
        document = two_sheet_workbook([make_row(10), make_row(11)], [make_row(2)])
        result = rebuild_aggregate(document, filename="coverage.xlsx")
        self.assertEqual(result.source_sheet_count, 2)
        self.assertEqual([row.title for row in result.rows], ["Story 2", "Story 10", "Story 11"])
        self.assertEqual(result.report.filename, "coverage.xlsx")

        wb = load_workbook(io.BytesIO(result.report.content))
        self.assertEqual([name for name in wb.sheetnames if name.lower() == "list"], ["LIST"])
        ws = wb["LIST"]
        self.assertEqual([ws.cell(row=r, column=4).value for r in (3, 4, 5)], ["Story 2", "Story 10", "Story 11"])
        self.assertEqual(ws["E6"].value, "=SUM(E3:E5)")

    def test_unresolved_values_round_trip_and_are_flagged(self):
        rows = [make_row(1, readership=UNRESOLVED, published=UNRESOLVED)]
        built = build_report(rows, BuildOptions(sheet_name="4"))
        result = rebuild_aggregate(built.content)
        recovered = result.rows[0]
        self.assertIs(recovered.readership, UNRESOLVED)
        self.assertIs(recovered.published, UNRESOLVED)
        ws = load_workbook(io.BytesIO(result.report.content))["LIST"]
        self.assertEqual(ws["E3"].font.color.rgb, "FFFF0000")
        self.assertEqual(ws["B3"].font.color.rgb, "FFFF0000")

    def test_unparsable_date_text_stays_visible_and_flagged(self):
        built = build_report([make_row(1), make_row(2)], BuildOptions(sheet_name="3"))
        wb = load_workbook(io.BytesIO(built.content))
        wb["3"]["B4"] = "early spring"
        buffer = io.BytesIO()
        wb.save(buffer)

        result = rebuild_aggregate(buffer.getvalue())
        recovered = [row for row in result.rows if row.title == "Story 2"][0]
        self.assertIs(recovered.published, UNRESOLVED)
        self.assertEqual(recovered.published_text, "early spring")
        self.assertEqual(recovered.to_dict()["published"], "early spring")
        ws = load_workbook(io.BytesIO(result.report.content))["LIST"]
        cell = [ws.cell(row=r, column=2) for r in (3, 4) if ws.cell(row=r, column=4).value == "Story 2"][0]
        self.assertEqual(cell.value, "early spring")
        self.assertEqual(cell.font.color.rgb, "FFFF0000")

    def test_custom_aggregate_sheet_name(self):
        built = build_report([make_row(1)], BuildOptions(sheet_name="1"))
        result = rebuild_aggregate(built.content, sheet_name="All Coverage")
        self.assertEqual(result.report.sheet_name, "All Coverage")

    def test_no_numeric_sheets(self):
        built = build_report([make_row(1)], BuildOptions(sheet_name="Report"))
        with self.assertRaises(WorkbookError):
            rebuild_aggregate(built.content)

    def test_numeric_sheets_without_rows(self):
        wb = Workbook()
        wb.active.title = "5"
        buffer = io.BytesIO()
        wb.save(buffer)
        with self.assertRaises(WorkbookError):
            rebuild_aggregate(buffer.getvalue())


class ReaderTests(unittest.TestCase):
    def test_numeric_sheets_sorted_by_value(self):
        wb = Workbook()
        wb.active.title = "10"
        for name in ("2", "LIST", "1a", "3"):
            wb.create_sheet(name)
        self.assertEqual(numeric_sheets(wb), ["2", "3", "10"])

    def test_accounting_negatives_and_placeholders(self):
        self.assertEqual(read_number("(1,234)"), -1234)
        self.assertEqual(read_number("$2,000"), 2000)
        self.assertEqual(read_number(15.0), 15)
        self.assertIs(read_number("N/A"), UNRESOLVED)
        self.assertIs(read_number(None), UNRESOLVED)

    def test_formula_values_use_cached_results(self):
        self.assertEqual(read_number("=E3*2", 84), 84)
        self.assertTrue(has_sequence_value(3))
        self.assertTrue(has_sequence_value(date(2025, 1, 1)))
        self.assertFalse(has_sequence_value("  "))
        self.assertFalse(has_sequence_value(None))

    def test_title_from_hyperlink_formula(self):
        ws = Workbook().active
        ws["D3"] = '=HYPERLINK("https://a.example/x","Story")'
        self.assertEqual(read_title(ws["D3"]), ("Story", "https://a.example/x"))
        ws["D4"] = "Plain"
        self.assertEqual(read_title(ws["D4"]), ("Plain", None))


if __name__ == "__main__":
    unittest.main()
