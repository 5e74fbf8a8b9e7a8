from __future__ import annotations

import io
import unittest
from datetime import date, datetime

from openpyxl import Workbook, load_workbook

from press_report.errors import WorkbookError
from press_report.rows import UNRESOLVED, CanonicalRow, StyleWarnings
from press_report.workbook import BuildOptions, build_report
from press_report.workbook.assembler import ensure_xlsx_name
from press_report.workbook.template import unique_sheet_name


def make_row(index: int = 1, **overrides) -> CanonicalRow:
    values = {
        "published": date(2025, 1, index),
        "outlet": f"Outlet {index}",
        "title": f"Story {index}",
        "readership": 1000 * index,
        "ad_eq": 300 * index,
        "base": "USA",
        "url": f"https://news.example/{index}",
    }
    values.update(overrides)
    return CanonicalRow(**values)


def open_report(content: bytes):
    return load_workbook(io.BytesIO(content))


def baseline_bytes() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "PRs"
    ws.append(["No.", "Date", "Headline", "Notes", "Mentions", "Readership", "Ad Eq", "Link"])
    wb.create_sheet("12")["A1"] = "existing"
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class BuildReportTests(unittest.TestCase):
    def test_rows_are_written_in_template_layout(self):
        rows = [make_row(1), make_row(2), make_row(3)]
        report = build_report(rows, BuildOptions(sheet_name="7"))
        self.assertEqual(report.sheet_name, "7")
        self.assertEqual(report.row_count, 3)
        self.assertEqual(report.filename, "report.xlsx")
        ws = open_report(report.content)["7"]

        self.assertEqual([ws.cell(row=r, column=1).value for r in (3, 4, 5)], [1, 2, 3])
        self.assertEqual(ws["B3"].value, datetime(2025, 1, 1))
        self.assertEqual(ws["B3"].number_format, "dd-mmm-yy")
        self.assertEqual(ws["C4"].value, "Outlet 2")
        self.assertEqual(ws["E5"].value, 3000)
        self.assertEqual(ws["E5"].number_format, "#,##0")
        self.assertEqual(ws["F5"].number_format, "$#,##0")
        self.assertEqual(ws["G3"].value, "USA")

    def test_title_links_and_plain_titles(self):
        rows = [make_row(1), make_row(2, url=None)]
        ws = open_report(build_report(rows).content).active
        linked = ws["D3"]
        self.assertEqual(linked.value, "Story 1")
        self.assertEqual(linked.hyperlink.target, "https://news.example/1")
        self.assertEqual(linked.font.underline, "single")
        self.assertEqual(linked.font.color.rgb, "FF0000FF")
        plain = ws["D4"]
        self.assertIsNone(plain.hyperlink)
        self.assertIsNone(plain.font.underline)

    def test_hyperlink_formula_url_is_unwrapped_for_the_link(self):
        row = make_row(1, url='=HYPERLINK("https://links.cision.one/x","https://real.example/story")')
        ws = open_report(build_report([row]).content).active
        self.assertEqual(ws["D3"].hyperlink.target, "https://real.example/story")

    def test_totals_follow_the_data_block_and_trailing_rows_move_down(self):
        rows = [make_row(i) for i in range(1, 5)]
        ws = open_report(build_report(rows).content).active
        self.assertEqual(ws["E7"].value, "=SUM(E3:E6)")
        self.assertEqual(ws["F7"].value, "=SUM(F3:F6)")
        self.assertEqual(ws["D7"].value, "Total")
        self.assertIn("B1:G1", {str(merged) for merged in ws.merged_cells.ranges})

    def test_totals_can_be_disabled(self):
        ws = open_report(build_report([make_row(1)], BuildOptions(write_totals=False)).content).active
        self.assertIsNone(ws["E4"].value)

    def test_unresolved_fields_use_placeholders(self):
        row = make_row(1, published=UNRESOLVED, outlet=UNRESOLVED, readership=UNRESOLVED)
        ws = open_report(build_report([row]).content).active
        self.assertEqual(ws["B3"].value, "Not Available")
        self.assertEqual(ws["C3"].value, "Not Available")
        self.assertEqual(ws["E3"].value, "N/A")

    def test_style_warnings_recolor_fonts_only(self):
        warnings = StyleWarnings(red_cells=[(0, 5)], red_rows=[1])
        rows = [make_row(1), make_row(2)]
        ws = open_report(build_report(rows, BuildOptions(style_warnings=warnings)).content).active
        self.assertEqual(ws["E3"].font.color.rgb, "FFFF0000")
        self.assertEqual(ws["E3"].font.name, "Calibri")
        self.assertNotEqual(getattr(ws["C3"].font.color, "rgb", None), "FFFF0000")
        for col in "ABCDEFG":
            self.assertEqual(ws[f"{col}4"].font.color.rgb, "FFFF0000")

    def test_sorting_moves_warnings_with_their_rows(self):
        older = make_row(1)
        newer = make_row(9)
        warnings = StyleWarnings(red_cells=[(0, 3)])
        options = BuildOptions(style_warnings=warnings, sort_rows=True)
        ws = open_report(build_report([older, newer], options).content).active
        self.assertEqual(ws["C3"].value, "Outlet 9")
        self.assertEqual(ws["C4"].font.color.rgb, "FFFF0000")

    def test_headline_override_and_number_prefix(self):
        options = BuildOptions(headline="Festival Season", number_prefix="12")
        ws = open_report(build_report([make_row(1)], options).content).active
        self.assertEqual(ws["B1"].value, "Festival Season")
        self.assertEqual(ws["A1"].value, "12. Festival Season")

    def test_prefix_uses_existing_headline(self):
        ws = open_report(build_report([make_row(1)], BuildOptions(number_prefix="3")).content).active
        self.assertEqual(ws["A1"].value, "3. Media Coverage Report")

    def test_autofit_respects_column_caps(self):
        long_title = "A very long headline " * 10
        ws = open_report(build_report([make_row(1, title=long_title)]).content).active
        self.assertEqual(ws.column_dimensions["B"].width, 14)
        self.assertEqual(ws.column_dimensions["D"].width, 60)
        self.assertGreaterEqual(ws.column_dimensions["C"].width, 10)

    def test_baseline_gets_a_new_unique_sheet_and_summary_entry(self):
        options = BuildOptions(baseline=baseline_bytes(), sheet_name="12", summary_link="https://press.example/")
        report = build_report([make_row(1), make_row(2)], options)
        self.assertEqual(report.sheet_name, "12-1")
        wb = open_report(report.content)
        self.assertEqual(wb.sheetnames, ["PRs", "12", "12-1"])
        self.assertEqual(wb["12"]["A1"].value, "existing")
        self.assertEqual(wb["12-1"]["C3"].value, "Outlet 1")

        prs = wb["PRs"]
        self.assertEqual(prs["A2"].value, 1)
        self.assertEqual(prs["C2"].value, "Media Coverage Report")
        self.assertEqual(prs["C2"].hyperlink.target, "https://press.example/")
        self.assertEqual(prs["E2"].value, "='12-1'!$A$4")
        self.assertEqual(prs["F2"].value, "='12-1'!$E$5")
        self.assertEqual(prs["G2"].value, "='12-1'!$F$5")

    def test_summary_uses_literal_totals_without_formulas(self):
        options = BuildOptions(baseline=baseline_bytes(), sheet_name="13", write_totals=False)
        wb = open_report(build_report([make_row(1), make_row(2)], options).content)
        self.assertEqual(wb["PRs"]["F2"].value, 3000)
        self.assertEqual(wb["PRs"]["G2"].value, 900)

    def test_unreadable_baseline_is_a_workbook_error(self):
        with self.assertRaises(WorkbookError):
            build_report([make_row(1)], BuildOptions(baseline=b"not a workbook"))

    def test_no_rows_is_a_workbook_error(self):
        with self.assertRaises(WorkbookError):
            build_report([])


class NamingTests(unittest.TestCase):
    def test_unique_sheet_name(self):
        wb = Workbook()
        wb.active.title = "Report"
        wb.create_sheet("Report-1")
        self.assertEqual(unique_sheet_name(wb, "report"), "report-2")
        self.assertEqual(unique_sheet_name(wb, "Other"), "Other")
        long_name = "x" * 40
        self.assertEqual(unique_sheet_name(wb, long_name), "x" * 31)
        wb.create_sheet("x" * 31)
        self.assertEqual(unique_sheet_name(wb, long_name), "x" * 29 + "-1")
        self.assertEqual(unique_sheet_name(wb, "a/b:c"), "a-b-c")

    def test_exhausted_suffixes_fall_back_to_a_non_numeric_name(self):
        wb = Workbook()
        wb.active.title = "7"
        for counter in range(1, 1000):
            wb.create_sheet(f"7-{counter}")
        name = unique_sheet_name(wb, "7")
        self.assertRegex(name, r"^7-\d{6}$")
        self.assertFalse(name.isdigit())
        self.assertNotIn(name.lower(), [ws.title.lower() for ws in wb.worksheets])

    def test_ensure_xlsx_name(self):
        self.assertEqual(ensure_xlsx_name("report"), "report.xlsx")
        self.assertEqual(ensure_xlsx_name("Monthly.XLSX"), "Monthly.XLSX")
        self.assertEqual(ensure_xlsx_name("legacy.xls"), "legacy.xlsx")
        self.assertEqual(ensure_xlsx_name(""), "report.xlsx")


if __name__ == "__main__":
    unittest.main()
