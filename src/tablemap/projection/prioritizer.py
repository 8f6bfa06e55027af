"""Column prioritizer: final column order and per-record projection."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from tablemap.core.models import Schema
from tablemap.errors import ExportConfigError


def resolve_column_order(priority_columns: Iterable[str], schema: Schema) -> tuple[str, ...]:
    """Priority columns first (caller order), then the rest of `schema`.

    Priority columns are kept even when no record carries them. Columns of
    the schema that are already in the priority list are left out of the
    tail so that every column appears exactly once.
    """
    priority = tuple(priority_columns)
    dupes = sorted({c for c in priority if priority.count(c) > 1})
    if dupes:
        raise ExportConfigError(f"duplicate priority columns: {', '.join(dupes)}")
    head = set(priority)
    return priority + tuple(c for c in schema if c not in head)


def project(record: Mapping[str, str], column_order: Sequence[str]) -> list[str]:
    """Map `record` onto `column_order`; absent columns become empty strings."""
    return [record.get(c, "") for c in column_order]
