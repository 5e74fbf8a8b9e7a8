#!/usr/bin/env python3
"""
Generates a matching pair of sample exports for trying press-report.

Run from the repo root:
    python sample-data/generate_samples.py

Writes:
  sample-data/12_coverage.csv   primary export
    - headers in a non-canonical order, plus an ignored "Sentiment" column
    - currency and thousands separators in the numeric columns
    - one row with a blank readership (dropped with an issue)
    - one row with an unparsable date (kept, flagged, with an issue)
  sample-data/12_pickup.xlsx    secondary export
    - headline in B1, notes above the header row
    - one article shared with the primary export under a different URL form
    - one row dated only through an rkey=YYYYMMDD query parameter
    - one row with no date at all (flagged red in the report)
"""

import csv
from pathlib import Path

import openpyxl

HERE = Path(__file__).parent
PRIMARY = HERE / "12_coverage.csv"
SECONDARY = HERE / "12_pickup.xlsx"

# ── Primary ──────────────────────────────────────────────────────────────────
primary_rows = [
    ["Headline", "Date", "Source", "Potential Audience", "AdEq", "Country", "URL", "Sentiment"],
    ["Big Launch", "2025-01-02", "Example Times", "100", "$30", "USA", "http://example.com/a", "positive"],
    ["Second Wave", "15/01/2025", "Daily Planet", "2,500,000", "$833,333", "USA", "https://dailyplanet.example/news/second", "neutral"],
    ["Quiet Mention", "3-Feb-25", "Harbour Herald", "42,000", "$14,000", "Thailand", "harbourherald.example/quiet", "neutral"],
    ["No Audience", "2025-01-20", "Empty Gazette", "", "$10", "UK", "https://gazette.example/none", "neutral"],
    ["Bad Date", "sometime", "Vague Weekly", "900", "$300", "UK", "https://vague.example/when", "neutral"],
]
with PRIMARY.open("w", encoding="utf-8", newline="") as handle:
    csv.writer(handle).writerows(primary_rows)

# ── Secondary ────────────────────────────────────────────────────────────────
wb = openpyxl.Workbook()
ws = wb.active
ws.title = "Pickup"
ws["B1"] = "Tourism Board Announces Festival Season"
ws["A2"] = "Distribution report"
ws.append([])
ws.append(["Release ID", "Date", "Outlet", "Headline", "Potential Audience", "Location", "URL"])
ws.append([4401, "2025-01-02", "Example Times", "Big Launch", 150, "USA", "https://www.example.com/a/"])
ws.append([4402, None, "Wire Digest", "Festival Season Opens", 60000, "Singapore",
           "https://wire.example/story?rkey=20250115&src=feed"])
ws.append([4403, None, "Unknown Outlet", "Festival Preview", 8000, "Malaysia", "https://unknown.example/preview"])
ws.append([])
ws.append(["Total", None, None, None, 68150])
wb.save(SECONDARY)

print(f"Saved: {PRIMARY}")
print(f"Saved: {SECONDARY}")
