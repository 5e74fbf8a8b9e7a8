"""Scalar coercion helpers: numbers, calendar dates and cell text."""

from __future__ import annotations

import math
import re
import warnings
from datetime import date, datetime, time, timedelta
from urllib.parse import parse_qsl, urlsplit

import pandas as pd

EXCEL_EPOCH = date(1899, 12, 30)
EXCEL_SERIAL_RANGE = (1, 2_958_465)
TWO_DIGIT_YEAR_PIVOT = 50
URL_DATE_PARAMS = ("rkey",)

MONTH_ABBREVIATIONS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

NUMBER_NOISE_RE = re.compile(r"[$€£¥₹,\s]")
NUMERIC_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
DMY_RE = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{2}|\d{4})$")
D_MON_Y_RE = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{2}|\d{4})$")
YYYYMMDD_RE = re.compile(r"^\d{8}$")
TIME_ONLY_RE = re.compile(r"^\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?\s*(?:[ap]\.?m\.?)?$", re.IGNORECASE)


def parse_number(value: object) -> int | float | None:
    """
    Parse a readership/ad-value figure.

    Currency symbols, thousands separators and whitespace are stripped before
    parsing. Returns ``None`` for blanks and anything non-numeric after
    cleaning. Integral values come back as ``int``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return _tidy_number(value)
    if isinstance(value, (date, datetime)):
        return None
    cleaned = NUMBER_NOISE_RE.sub("", str(value))
    if not cleaned or not NUMERIC_RE.match(cleaned):
        return None
    number = float(cleaned)
    if not math.isfinite(number):
        return None
    return _tidy_number(number)


def _tidy_number(number: int | float) -> int | float:
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def expand_year(raw: str) -> int:
    year = int(raw)
    if len(raw) == 2:
        return (2000 if year < TWO_DIGIT_YEAR_PIVOT else 1900) + year
    return year


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_local_date(moment: datetime) -> date:
    """Collapse a datetime onto the local calendar day."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


def _generic_date(text: str) -> date | None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return to_local_date(parsed.to_pydatetime())


def parse_flexible_date(value: object) -> date | None:
    """
    Parse a published date from free text.

    Tried in order: a generic calendar parse, ``D-M-Y``/``D/M/Y`` with a two
    or four digit year, then ``D-MON-Y`` with a three letter month. The
    result is date-only in the local calendar.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_local_date(value)
    if isinstance(value, date):
        return value
    if isinstance(value, time):
        return None
    text = str(value).strip()
    if not text or TIME_ONLY_RE.match(text):
        return None

    parsed = _generic_date(text)
    if parsed is not None:
        return parsed

    match = DMY_RE.match(text)
    if match:
        day, month, year = match.groups()
        return _safe_date(expand_year(year), int(month), int(day))

    match = D_MON_Y_RE.match(text)
    if match:
        day, mon, year = match.groups()
        month = MONTH_ABBREVIATIONS.get(mon.lower())
        if month:
            return _safe_date(expand_year(year), month, int(day))
    return None


def excel_serial_to_date(serial: float) -> date | None:
    if not EXCEL_SERIAL_RANGE[0] <= serial <= EXCEL_SERIAL_RANGE[1]:
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def coerce_cell_date(value: object) -> date | None:
    """Date from a spreadsheet cell: native date, serial number or text."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return excel_serial_to_date(value)
    return parse_flexible_date(value)


def date_from_url(url: str | None) -> date | None:
    """
    Derive a date from an 8 digit ``YYYYMMDD`` query parameter.

    Parameters named in ``URL_DATE_PARAMS`` are checked first, then any other
    parameter whose value is exactly eight digits.
    """
    if not url:
        return None
    try:
        query = urlsplit(url.strip()).query
    except ValueError:
        return None
    params = parse_qsl(query, keep_blank_values=False)
    preferred = [value for key, value in params if key.lower() in URL_DATE_PARAMS]
    others = [value for key, value in params if key.lower() not in URL_DATE_PARAMS]
    for token in preferred + others:
        token = token.strip()
        if not YYYYMMDD_RE.match(token):
            continue
        parsed = _safe_date(int(token[:4]), int(token[4:6]), int(token[6:]))
        if parsed is not None:
            return parsed
    return None


def cell_text(value: object) -> str:
    """Plain text for a raw spreadsheet value, trimmed."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())
