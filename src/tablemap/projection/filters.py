"""Row filter engine.

A `FilterPredicate` targets a 0-based position in the prioritized column
order and drops a row when the cell at that position contains its substring
(case-sensitive). Positions past the end of a row and empty cells never
match.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from tablemap.errors import ExportConfigError


@dataclass(frozen=True, slots=True)
class FilterPredicate:
    """Drop rows whose cell at `position` contains `contains`."""

    position: int
    contains: str

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ExportConfigError(f"filter position must be >= 0, got {self.position}")
        if not self.contains:
            raise ExportConfigError("filter substring must not be empty")

    def matches(self, row: Sequence[str]) -> bool:
        if self.position >= len(row):
            return False
        value = row[self.position]
        return bool(value) and self.contains in value


FilterLike = FilterPredicate | tuple[int, str]


def should_skip(row: Sequence[str], predicates: Sequence[FilterPredicate]) -> bool:
    """Return True if any predicate matches the projected `row`."""
    return any(p.matches(row) for p in predicates)


def parse_filter(text: str) -> FilterPredicate:
    """Parse the `POSITION:SUBSTRING` form, e.g. ``"1:doe"``.

    Only the first colon separates the two parts, so the substring may itself
    contain colons.
    """
    pos, sep, needle = text.partition(":")
    if not sep:
        raise ExportConfigError(f"filter {text!r} is not of the form POSITION:SUBSTRING")
    try:
        position = int(pos)
    except ValueError as e:
        raise ExportConfigError(f"filter position {pos!r} is not an integer") from e
    return FilterPredicate(position, needle)


def normalize_filters(filters: Iterable[FilterLike]) -> tuple[FilterPredicate, ...]:
    """Accept predicates or `(position, substring)` tuples."""
    out: list[FilterPredicate] = []
    for f in filters:
        if isinstance(f, FilterPredicate):
            out.append(f)
        else:
            position, needle = f
            out.append(FilterPredicate(int(position), needle))
    return tuple(out)
