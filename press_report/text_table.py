"""
Delimited-text decoding and parsing.

Public API:
    text   = decode_text(raw_bytes)
    matrix = parse_delimited(text)            # delimiter sniffed
    matrix = parse_delimited(text, ";")

The parser is quote-aware (embedded delimiters and line breaks inside quoted
fields, ``""`` as an escaped quote, CRLF or LF terminators). An unbalanced
trailing quote does not raise; the remainder of the input becomes the text of
the last field. A blank line yields an empty row; callers decide whether to
skip it.
"""

from __future__ import annotations

import csv
import io
from collections import Counter
from contextlib import contextmanager

import chardet

from press_report.errors import SourceError

DELIMITER_CANDIDATES = (",", ";", "\t", "|")
BOM = "﻿"


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING
# ══════════════════════════════════════════════════════════════════════════════

def detect_encoding(raw: bytes) -> str:
    """Best-guess encoding name for ``raw``; ``utf-8`` when undecided."""
    if raw.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if raw.startswith((b"\xff\xfe", b"\xfe\xff")):
        return "utf-16"
    result = chardet.detect(raw[:200_000])
    detected = result.get("encoding") or ""
    if not detected or (result.get("confidence") or 0.0) < 0.5:
        return "utf-8"
    if detected.upper().replace("-", "") == "ASCII":
        return "utf-8"
    return detected


def decode_text(raw: bytes) -> str:
    """
    Decode uploaded bytes into text.

    Whole-buffer decoding is tried first with the detected encoding. When that
    fails the buffer is decoded line by line (UTF-8, detected, latin-1, then
    cp1252 with replacement) so a few stray bytes never abort extraction.
    Null bytes and a leading BOM are removed.
    """
    encoding = detect_encoding(raw)
    try:
        text = raw.decode(encoding)
    except (LookupError, UnicodeDecodeError):
        text = _decode_lines(raw, encoding)
    return text.lstrip(BOM).replace("\x00", "")


def _decode_lines(raw: bytes, preferred: str) -> str:
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred, "latin-1"):
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded)
    return "\n".join(decoded_lines)


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    ``csv.Sniffer`` is tried first; when it cannot decide, each candidate is
    scored by column-count consistency and width across the sample.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])
    if not sample:
        return ","

    try:
        return csv.Sniffer().sniff(sample, delimiters="".join(DELIMITER_CANDIDATES)).delimiter
    except csv.Error:
        pass

    best_delim = ","
    best_score = float("-inf")
    sample_text = "\n".join(sample_lines)
    for delim in DELIMITER_CANDIDATES:
        with field_size_limit(len(sample_text) + 1):
            rows = [row for row in csv.reader(io.StringIO(sample_text), delimiter=delim) if row]
        if len(rows) < 2:
            continue
        widths = Counter(len(row) for row in rows)
        mode_width, mode_count = widths.most_common(1)[0]
        score = mode_width * 2.0 + (mode_count / len(rows)) * mode_width
        if len(rows[0]) == mode_width:
            score += 1.0
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


# ══════════════════════════════════════════════════════════════════════════════
# PARSING
# ══════════════════════════════════════════════════════════════════════════════


@contextmanager
def field_size_limit(size: int):
    """Raise the csv module's per-field limit to at least ``size`` for the block."""
    previous = csv.field_size_limit()
    csv.field_size_limit(max(previous, size))
    try:
        yield
    finally:
        csv.field_size_limit(previous)


def parse_delimited(text: str, delimiter: str | None = None) -> list[list[str]]:
    """
    Split ``text`` into a matrix of string cells.

    The field limit covers the whole input, so an unbalanced quote can swallow
    any remainder. Other reader failures raise ``SourceError``.
    """
    if delimiter is None:
        delimiter = detect_delimiter(text)
    with field_size_limit(len(text) + 1):
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=False)
        try:
            return [list(row) for row in reader]
        except csv.Error as exc:
            raise SourceError(f"Primary source could not be parsed: {exc}") from exc


def is_blank_row(row: list) -> bool:
    return all(str(cell).strip() == "" for cell in row)
