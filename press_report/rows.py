"""Canonical row model shared by every stage of the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Union

TEXT_PLACEHOLDER = "Not Available"
NUM_PLACEHOLDER = "N/A"


class Unresolved:
    """Marker for a field whose value could not be determined."""

    _instance: "Unresolved | None" = None
    __slots__ = ()

    def __new__(cls) -> "Unresolved":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "Unresolved":
        return self

    def __deepcopy__(self, memo: dict) -> "Unresolved":
        return self

    def __reduce__(self):
        return (Unresolved, ())


UNRESOLVED = Unresolved()

Number = Union[int, float]
TextField = Union[str, Unresolved]
NumberField = Union[int, float, Unresolved]
DateField = Union[date, Unresolved]


def is_unresolved(value: Any) -> bool:
    return value is UNRESOLVED


@dataclass(frozen=True)
class CanonicalRow:
    published: DateField
    outlet: TextField
    title: TextField
    readership: NumberField
    ad_eq: NumberField
    base: TextField
    url: str | None = None
    # Unparsable date text kept for display; only set while published is unresolved.
    published_text: str | None = None

    @property
    def unresolved_fields(self) -> tuple[str, ...]:
        return tuple(name for name in REQUIRED_FIELDS if is_unresolved(getattr(self, name)))

    @property
    def is_partial(self) -> bool:
        return bool(self.unresolved_fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "published": self.published_text or display_date(self.published),
            "outlet": display_text(self.outlet),
            "title": display_text(self.title),
            "readership": display_number(self.readership),
            "ad_eq": display_number(self.ad_eq),
            "base": display_text(self.base),
            "url": self.url,
        }


# Order matches the report's data columns after the sequence column.
REQUIRED_FIELDS = ("published", "outlet", "title", "readership", "ad_eq", "base")
ALL_FIELDS = REQUIRED_FIELDS + ("url",)
NUMERIC_FIELDS = ("readership", "ad_eq")

# 1-based worksheet column for each field in the report layout.
SEQUENCE_COLUMN = 1
FIELD_COLUMNS = {
    "published": 2,
    "outlet": 3,
    "title": 4,
    "readership": 5,
    "ad_eq": 6,
    "base": 7,
}
REPORT_COLUMN_COUNT = 7

HEADER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "published": ("published", "date"),
    "outlet": ("source", "outlet", "outlet name", "publisher"),
    "title": ("headline", "title"),
    "readership": ("potential audience",),
    "ad_eq": ("adeq", "advertising value equivalency", "ad value"),
    "base": ("location", "country", "region", "base"),
    "url": ("url", "link"),
}


def display_text(value: TextField) -> str:
    return TEXT_PLACEHOLDER if is_unresolved(value) else str(value)


def display_number(value: NumberField) -> Number | str:
    return NUM_PLACEHOLDER if is_unresolved(value) else value


def display_date(value: DateField) -> str:
    return TEXT_PLACEHOLDER if is_unresolved(value) else value.isoformat()


@dataclass(frozen=True)
class ExtractIssue:
    row: int
    message: str
    field: str | None = None
    raw_value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "field": self.field,
            "message": self.message,
            "raw_value": self.raw_value,
        }


@dataclass
class StyleWarnings:
    """Cells and rows to flag in red, indexed relative to the row list.

    ``red_cells`` holds ``(row_index, column)`` pairs where ``row_index`` is
    0-based into the reconciled rows and ``column`` is the 1-based worksheet
    column from ``FIELD_COLUMNS``.
    """

    red_cells: list[tuple[int, int]] = field(default_factory=list)
    red_rows: list[int] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.red_cells or self.red_rows)

    def reindexed(self, order: list[int]) -> "StyleWarnings":
        """Follow a permutation where ``order[new_index] == old_index``."""
        position = {old: new for new, old in enumerate(order)}
        return StyleWarnings(
            red_cells=sorted((position[row], col) for row, col in self.red_cells if row in position),
            red_rows=sorted(position[row] for row in self.red_rows if row in position),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "red_cells": [{"row": row, "col": col} for row, col in self.red_cells],
            "red_rows": list(self.red_rows),
        }
