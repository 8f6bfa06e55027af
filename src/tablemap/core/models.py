"""Core data models for the row store and the export pipeline.

This module defines:
- `Record` / `RecordKey`: one dynamic-column row and its unique key.
- `Schema`: immutable, ordered snapshot of the column names seen in a scan.
- `KeyRange` / `Chunk`: contiguous partitions of the store's key order.
- `ChunkStats`: per-chunk counters reported by export workers.
- `ExportResult`: aggregate outcome of one export call.
- `ExportState`: orchestrator state machine states.

Design notes
------------
- Record values are plain strings at this boundary; the byte form used by
  the store is handled by `tablemap.storage.codec`.
- Key ranges are positional: `KeyRange(10, 20)` covers the 10th..19th records
  in the store's native scan order, which keeps chunks contiguous and
  disjoint without knowing anything about the key values themselves.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

RecordKey = str
Record = dict[str, str]


# === Schema ===


@dataclass(frozen=True, slots=True)
class Schema:
    """Ordered column names in first-seen order. Immutable once built."""

    columns: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[str]:
        return iter(self.columns)

    def __contains__(self, name: object) -> bool:
        return name in self.columns


# === Partitioning ===


@dataclass(frozen=True, slots=True)
class KeyRange:
    """Half-open range `[start, stop)` of positions in the store's key order."""

    start: int
    stop: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.stop < self.start:
            raise ValueError(f"invalid key range [{self.start}, {self.stop})")

    def __len__(self) -> int:
        return self.stop - self.start

    @property
    def is_empty(self) -> bool:
        return self.stop == self.start


@dataclass(frozen=True, slots=True)
class Chunk:
    """One worker's share of the dataset; `index` fixes its place in the output."""

    index: int
    key_range: KeyRange

    @property
    def rows(self) -> int:
        return len(self.key_range)


# === Results ===


@dataclass(slots=True)
class ChunkStats:
    """Counters for a single processed chunk."""

    index: int
    scanned: int = 0
    written: int = 0
    filtered: int = 0
    bytes: int = 0


@dataclass(kw_only=True)
class ExportResult:
    """Aggregate outcome of a successful export."""

    path: Path
    columns: tuple[str, ...]
    rows_written: int
    rows_filtered: int
    rows_scanned: int
    bytes_written: int
    chunks: int
    worker_count: int
    elapsed_s: float
    chunk_stats: list[ChunkStats] = field(default_factory=list)


class ExportState(str, enum.Enum):
    PLANNING = "planning"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"
