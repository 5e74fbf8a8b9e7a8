"""Map raw column labels onto canonical row fields."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from press_report.rows import HEADER_SYNONYMS


def normalize_label(value: object) -> str:
    """Trim, lowercase and collapse internal whitespace."""
    if value is None:
        return ""
    return " ".join(str(value).strip().lower().split())


@dataclass
class HeaderResolution:
    by_index: dict[int, str | None] = field(default_factory=dict)
    by_label: dict[str, str | None] = field(default_factory=dict)
    unmapped: list[str] = field(default_factory=list)

    def column_for(self, field_name: str) -> int | None:
        """First column index resolved to ``field_name``."""
        for index, resolved in sorted(self.by_index.items()):
            if resolved == field_name:
                return index
        return None

    @property
    def fields(self) -> set[str]:
        return {value for value in self.by_index.values() if value}


def build_synonym_index(synonyms: Mapping[str, Sequence[str]]) -> dict[str, str]:
    index: dict[str, str] = {}
    for field_name, variants in synonyms.items():
        for variant in variants:
            index[normalize_label(variant)] = field_name
    return index


def resolve_headers(
    labels: Sequence[object],
    synonyms: Mapping[str, Sequence[str]] = HEADER_SYNONYMS,
) -> HeaderResolution:
    """
    Resolve every label by exact normalized equality against ``synonyms``.

    No fuzzy or partial matching is attempted. Labels that match nothing are
    reported in ``unmapped`` in their original spelling.
    """
    index = build_synonym_index(synonyms)
    resolution = HeaderResolution()
    for position, raw in enumerate(labels):
        label = "" if raw is None else str(raw)
        matched = index.get(normalize_label(label))
        resolution.by_index[position] = matched
        resolution.by_label[label] = matched
        if matched is None:
            resolution.unmapped.append(label)
    return resolution
