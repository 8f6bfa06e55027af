"""Chunk planning and worker-count resolution.

Functions
---------
- plan_chunks: split `total_rows` into `worker_count` contiguous chunks.
- plan_fixed_chunks: split `total_rows` into chunks of at most `rows_per_chunk`.
- iter_ranges: yield half-open `[start, stop)` ranges of a fixed size.
- resolve_worker_count: caller value, else CPU count, else a fallback.

All ranges are half-open positions in the store's native key order.
"""

from __future__ import annotations

import logging
import os
import warnings
from collections.abc import Generator

from tablemap.constants import DEFAULT_WORKER_COUNT
from tablemap.core.models import Chunk, KeyRange
from tablemap.errors import ParallelismResolutionWarning

logger = logging.getLogger(__name__)


def plan_chunks(total_rows: int, worker_count: int) -> list[Chunk]:
    """Divide `[0, total_rows)` into `worker_count` contiguous, disjoint chunks.

    Parameters
    ----------
    total_rows : int
        Number of records in the store.
    worker_count : int
        Desired number of chunks; values below 1 are treated as 1.

    Returns
    -------
    list[Chunk]
        Chunks indexed 0..N-1. Each holds `total_rows // worker_count` rows
        except the last, which also takes the remainder. An empty dataset
        yields a single empty chunk so the export still writes a header.
    """
    if total_rows < 0:
        raise ValueError("total_rows must be >= 0")
    if total_rows == 0:
        return [Chunk(0, KeyRange(0, 0))]
    n = max(1, worker_count)
    size = total_rows // n
    chunks: list[Chunk] = []
    for i in range(n):
        start = i * size
        stop = total_rows if i == n - 1 else start + size
        chunks.append(Chunk(i, KeyRange(start, stop)))
    return chunks


def iter_ranges(total_rows: int, step: int) -> Generator[tuple[int, int], None, None]:
    """Yield half-open `[start, stop)` ranges of at most `step` rows."""
    x = 0
    while x < total_rows:
        y = min(total_rows, x + step)
        yield (x, y)
        x = y


def plan_fixed_chunks(total_rows: int, rows_per_chunk: int) -> list[Chunk]:
    """Chunks of at most `rows_per_chunk` rows (the last one may be shorter)."""
    if rows_per_chunk < 1:
        raise ValueError("rows_per_chunk must be >= 1")
    if total_rows <= 0:
        return [Chunk(0, KeyRange(0, 0))]
    return [Chunk(i, KeyRange(a, b)) for i, (a, b) in enumerate(iter_ranges(total_rows, rows_per_chunk))]


def resolve_worker_count(requested: int | None = None) -> int:
    """Return `requested` if positive, else the CPU count, else the fallback."""
    if requested is not None and requested >= 1:
        return requested
    detected = os.cpu_count()
    if detected:
        return detected
    msg = f"cannot detect available parallelism; using {DEFAULT_WORKER_COUNT} workers"
    logger.warning(msg)
    warnings.warn(msg, ParallelismResolutionWarning, stacklevel=2)
    return DEFAULT_WORKER_COUNT
