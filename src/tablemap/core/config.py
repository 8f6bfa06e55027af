from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from tablemap.projection.filters import FilterPredicate


@dataclass(frozen=True)
class ExportConfig:
    """Configuration for one export run."""

    output_path: Path
    worker_count: int | None = None  # None -> detect from the CPU count
    priority_columns: tuple[str, ...] = ()
    filters: tuple[FilterPredicate, ...] = ()
    rows_per_chunk: int | None = None  # None -> one chunk per worker
    staging_dir: Path | None = None  # defaults to the output directory


class FilterSpec(BaseModel):
    position: int = Field(ge=0, description="0-based column position in the header")
    contains: str = Field(min_length=1, description="Case-sensitive substring")


class ExportProfile(BaseModel):
    """Reusable export settings, loaded from a JSON file.

    Example::

        {
          "priority_columns": ["A", "C"],
          "filters": [{"position": 1, "contains": "doe"}]
        }
    """

    priority_columns: Sequence[str] = ()
    filters: Sequence[FilterSpec] = ()
    workers: int | None = Field(default=None, ge=1)
    rows_per_chunk: int | None = Field(default=None, ge=1)

    @classmethod
    def load(cls, path: Path) -> ExportProfile:
        return cls.model_validate(json.loads(path.read_text(encoding="utf-8")))

    def predicates(self) -> tuple[FilterPredicate, ...]:
        return tuple(FilterPredicate(f.position, f.contains) for f in self.filters)


def merge_profile(
    profile: ExportProfile | None,
    *,
    output_path: Path,
    worker_count: int | None = None,
    priority_columns: Sequence[str] = (),
    filters: Sequence[FilterPredicate] = (),
    rows_per_chunk: int | None = None,
) -> ExportConfig:
    """Build an `ExportConfig`; explicit arguments take precedence over the profile.

    Priority columns and filters from the profile come first, explicit ones
    are appended after them.
    """
    if profile is None:
        profile = ExportProfile()
    return ExportConfig(
        output_path=output_path,
        worker_count=worker_count if worker_count is not None else profile.workers,
        priority_columns=tuple(profile.priority_columns) + tuple(priority_columns),
        filters=profile.predicates() + tuple(filters),
        rows_per_chunk=rows_per_chunk if rows_per_chunk is not None else profile.rows_per_chunk,
    )
