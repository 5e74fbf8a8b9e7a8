"""
Reconcile rows from the two sources.

Rows are matched on their canonical URL key. The first row seen for a key is
the merge target; later rows with the same key only fill gaps in it. After
merging, rows are ordered newest first and style warnings are derived for
every unresolved field and every row whose date could not be derived.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date

from press_report.rows import (
    FIELD_COLUMNS,
    REQUIRED_FIELDS,
    CanonicalRow,
    StyleWarnings,
    display_text,
    is_unresolved,
)
from press_report.urls import TRACKING_HOSTS, canonicalize_url

TEXT_FIELDS = ("outlet", "title", "base")


@dataclass
class MergeResult:
    rows: list[CanonicalRow] = field(default_factory=list)
    style_warnings: StyleWarnings = field(default_factory=StyleWarnings)
    merged_count: int = 0


def _as_number(value) -> float:
    return 0 if is_unresolved(value) else value


def merge_row(existing: CanonicalRow, incoming: CanonicalRow) -> CanonicalRow:
    """Fold ``incoming`` into ``existing`` without discarding resolved data."""
    changes: dict = {}

    if not (is_unresolved(existing.readership) and is_unresolved(incoming.readership)):
        best = max(_as_number(existing.readership), _as_number(incoming.readership))
        if best != existing.readership:
            changes["readership"] = best

    if is_unresolved(existing.ad_eq) or existing.ad_eq == 0:
        if not is_unresolved(incoming.ad_eq):
            changes["ad_eq"] = incoming.ad_eq

    for name in TEXT_FIELDS:
        if is_unresolved(getattr(existing, name)) and not is_unresolved(getattr(incoming, name)):
            changes[name] = getattr(incoming, name)

    if is_unresolved(existing.published) and isinstance(incoming.published, date):
        changes["published"] = incoming.published
        changes["published_text"] = None

    if not existing.url and incoming.url:
        changes["url"] = incoming.url

    return replace(existing, **changes) if changes else existing


def sort_key(row: CanonicalRow) -> tuple:
    if isinstance(row.published, date):
        dated = (0, -row.published.toordinal())
    else:
        dated = (1, 0)
    return dated + (display_text(row.outlet).casefold(),)


def sorted_order(rows: Sequence[CanonicalRow]) -> list[int]:
    """Indices of ``rows`` in report order (stable)."""
    return sorted(range(len(rows)), key=lambda index: sort_key(rows[index]))


def sort_rows(rows: Iterable[CanonicalRow]) -> list[CanonicalRow]:
    return sorted(rows, key=sort_key)


def derive_style_warnings(
    rows: Sequence[CanonicalRow],
    invalid_date_urls: Collection[str] = (),
) -> StyleWarnings:
    invalid = {url.strip() for url in invalid_date_urls}
    warnings = StyleWarnings()
    for index, row in enumerate(rows):
        for name in REQUIRED_FIELDS:
            if is_unresolved(getattr(row, name)):
                warnings.red_cells.append((index, FIELD_COLUMNS[name]))
        if row.url and row.url.strip() in invalid:
            warnings.red_rows.append(index)
    return warnings


def merge_sources(
    primary: Sequence[CanonicalRow],
    secondary: Sequence[CanonicalRow],
    invalid_date_urls: Collection[str] = (),
    *,
    tracking_hosts: Sequence[str] = TRACKING_HOSTS,
) -> MergeResult:
    rows: list[CanonicalRow] = list(primary)
    index_by_key: dict[str, int] = {}
    for position, row in enumerate(rows):
        key = canonicalize_url(row.url, tracking_hosts)
        if key and key not in index_by_key:
            index_by_key[key] = position

    merged = 0
    for row in secondary:
        key = canonicalize_url(row.url, tracking_hosts)
        if not key:
            rows.append(row)
            continue
        target = index_by_key.get(key)
        if target is None:
            index_by_key[key] = len(rows)
            rows.append(row)
            continue
        rows[target] = merge_row(rows[target], row)
        merged += 1

    ordered = sort_rows(rows)
    return MergeResult(
        rows=ordered,
        style_warnings=derive_style_warnings(ordered, invalid_date_urls),
        merged_count=merged,
    )
