from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from tablemap.core.models import KeyRange, Record, RecordKey


# ---------------------------------------------------------------------------
# IRowReader
# ---------------------------------------------------------------------------

@runtime_checkable
class IRowReader(Protocol):
    """
    Read access to a dynamic-column row store.

    Domain expectations:
    - Records are returned in the store's native key order, which must be
      stable for as long as the store is not written to.
    - `KeyRange` positions refer to that order.
    - A reader handle is used by exactly one worker at a time.
    """

    def get(self, key: RecordKey) -> Record | None:
        """Return the record stored under `key`, or None."""
        ...

    def scan(self, key_range: KeyRange) -> Iterator[tuple[RecordKey, Record]]:
        """
        Lazily yield `(key, record)` pairs for the positions in `key_range`.

        Implementations:
        - SQLite-backed store (`TableMapStore`)
        - In-memory store for tests (`InMemoryRowStore`)
        """
        ...

    def scan_column_names(self, key_range: KeyRange) -> Iterator[Sequence[str]]:
        """Yield only the column names of each record, in scan order."""
        ...

    def count(self) -> int:
        """Return the number of records."""
        ...

    def close(self) -> None:
        ...


# ---------------------------------------------------------------------------
# IRowStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IRowStore(IRowReader, Protocol):
    """
    Writable row store that can hand out per-worker read handles.

    `open_reader()` must return a handle that is safe to use from a worker
    thread while other workers use their own handles concurrently.
    """

    def put(self, key: RecordKey, record: Record) -> None:
        """Create or replace the record stored under `key`."""
        ...

    def open_reader(self) -> IRowReader:
        ...


# ---------------------------------------------------------------------------
# IFragmentFormat
# ---------------------------------------------------------------------------

@runtime_checkable
class IFragmentFormat(Protocol):
    """
    Output format used by the export pipeline.

    Workers write one fragment per chunk with `write_fragment`; the
    orchestrator then calls `merge` once with the fragments in chunk order.
    """

    name: str
    suffix: str
    requires_columns: bool

    def write_fragment(
        self,
        path: Path,
        columns: Sequence[str],
        rows: Iterable[Sequence[str]],
    ) -> int:
        """Write the rows of one chunk (no header). Returns bytes written."""
        ...

    def merge(
        self,
        out_path: Path,
        columns: Sequence[str],
        fragments: Sequence[Path],
    ) -> int:
        """Write the complete output to `out_path`. Returns its size in bytes."""
        ...
