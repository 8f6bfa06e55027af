"""Dynamic schema registry.

Tracks the union of column names seen across records, in first-seen order.
A registry lives for one export pass; `snapshot()` freezes it into a
`Schema` that is handed to every worker.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from tablemap.core.interfaces import IRowReader
from tablemap.core.models import KeyRange, Schema


class SchemaRegistry:
    def __init__(self) -> None:
        # dict keeps insertion order and gives O(1) membership
        self._seen: dict[str, None] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, name: object) -> bool:
        return name in self._seen

    def register(self, record: Mapping[str, str]) -> int:
        """Register the columns of one record. Returns how many were new."""
        return self.register_names(record.keys())

    def register_names(self, names: Iterable[str]) -> int:
        added = 0
        for name in names:
            if name not in self._seen:
                self._seen[name] = None
                added += 1
        return added

    def snapshot(self) -> Schema:
        return Schema(tuple(self._seen))


def prescan_schema(reader: IRowReader, total_rows: int | None = None) -> Schema:
    """Build the schema with one single-threaded pass over all column names."""
    total = reader.count() if total_rows is None else total_rows
    registry = SchemaRegistry()
    for names in reader.scan_column_names(KeyRange(0, total)):
        registry.register_names(names)
    return registry.snapshot()
