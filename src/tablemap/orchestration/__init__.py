"""Chunk planning for the parallel export.

The export entry points live in `tablemap.orchestration.orchestrator`.
"""

from tablemap.orchestration.utils import (
    iter_ranges,
    plan_chunks,
    plan_fixed_chunks,
    resolve_worker_count,
)

__all__ = [
    "iter_ranges",
    "plan_chunks",
    "plan_fixed_chunks",
    "resolve_worker_count",
]
