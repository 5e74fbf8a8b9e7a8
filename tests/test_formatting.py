from __future__ import annotations

import unittest
from datetime import date

from openpyxl import Workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Font

from press_report.workbook.formatting import (
    autofit_columns,
    displayed_text,
    insert_rows_preserving_layout,
    set_font_color,
    write_text,
)


class DisplayedTextTests(unittest.TestCase):
    def setUp(self):
        self.wb = Workbook()
        self.ws = self.wb.active

    def test_numbers_follow_their_format(self):
        cell = self.ws["A1"]
        cell.value = 1234567
        cell.number_format = "#,##0"
        self.assertEqual(displayed_text(self.ws, cell), "1,234,567")
        cell.number_format = "$#,##0"
        self.assertEqual(displayed_text(self.ws, cell), "$1,234,567")

    def test_dates_use_the_short_month_form(self):
        cell = self.ws["A1"]
        cell.value = date(2025, 1, 5)
        cell.number_format = "dd-mmm-yy"
        self.assertEqual(displayed_text(self.ws, cell), "05-Jan-25")

    def test_formulas_resolve_to_displayed_values(self):
        self.ws["E1"] = 1000
        self.ws["E2"] = 2500
        total = self.ws["E3"]
        total.value = "=SUM(E1:E2)"
        total.number_format = "#,##0"
        self.assertEqual(displayed_text(self.ws, total), "3,500")
        link = self.ws["A1"]
        link.value = '=HYPERLINK("https://a.example","Story")'
        self.assertEqual(displayed_text(self.ws, link), "Story")

    def test_rich_text_renders_as_plain_text(self):
        cell = self.ws["B1"]
        cell.value = CellRichText(["Big ", TextBlock(InlineFont(b=True), "Launch")])
        self.assertEqual(displayed_text(self.ws, cell), "Big Launch")

    def test_text_starting_with_equals_stays_text(self):
        cell = self.ws["C1"]
        write_text(cell, "=Tech Daily")
        self.assertEqual(cell.data_type, "s")
        self.assertEqual(displayed_text(self.ws, cell), "=Tech Daily")
        write_text(cell, "Tech Daily")
        self.assertEqual(cell.data_type, "s")


class LayoutTests(unittest.TestCase):
    def test_insert_rows_moves_merges_and_heights_below(self):
        wb = Workbook()
        ws = wb.active
        ws.merge_cells("B1:G1")
        ws["D4"] = "Total"
        ws.merge_cells("A4:C4")
        ws.row_dimensions[4].height = 30
        insert_rows_preserving_layout(ws, 4, 2)
        ranges = {str(merged) for merged in ws.merged_cells.ranges}
        self.assertEqual(ranges, {"B1:G1", "A6:C6"})
        self.assertEqual(ws["D6"].value, "Total")
        self.assertEqual(ws.row_dimensions[6].height, 30)

    def test_set_font_color_keeps_other_attributes(self):
        wb = Workbook()
        cell = wb.active["A1"]
        cell.font = Font(name="Arial", bold=True, size=9)
        set_font_color(cell, "FFFF0000")
        self.assertEqual(cell.font.color.rgb, "FFFF0000")
        self.assertTrue(cell.font.bold)
        self.assertEqual(cell.font.name, "Arial")

    def test_autofit_clamps_and_pads(self):
        wb = Workbook()
        ws = wb.active
        ws["B1"] = "short"
        ws["C1"] = "x" * 100
        ws["D1"] = "y" * 20
        widths = autofit_columns(ws, [2, 3, 4], per_column={4: {"max": 14}})
        self.assertEqual(widths, {2: 10, 3: 60, 4: 14})
        self.assertEqual(ws.column_dimensions["C"].width, 60)


if __name__ == "__main__":
    unittest.main()
