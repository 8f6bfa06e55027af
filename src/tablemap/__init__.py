from __future__ import annotations

from .core.config import ExportConfig, ExportProfile
from .core.models import Chunk, ExportResult, KeyRange, Schema
from .errors import (
    EncodingError,
    ExportConfigError,
    MergeIOError,
    ParallelismResolutionWarning,
    StoreAccessError,
    TableMapError,
    WorkerFailure,
)
from .orchestration.orchestrator import export_csv, export_parquet, export_sqlite, run_export
from .projection import FilterPredicate, SchemaRegistry, project, resolve_column_order, should_skip
from .orchestration.utils import plan_chunks
from .storage import InMemoryRowStore, TableMapStore

__all__ = [
    "export_csv",
    "export_parquet",
    "export_sqlite",
    "run_export",
    "ExportConfig",
    "ExportProfile",
    "Chunk",
    "ExportResult",
    "KeyRange",
    "Schema",
    "FilterPredicate",
    "SchemaRegistry",
    "project",
    "resolve_column_order",
    "should_skip",
    "plan_chunks",
    "InMemoryRowStore",
    "TableMapStore",
    "TableMapError",
    "StoreAccessError",
    "EncodingError",
    "WorkerFailure",
    "MergeIOError",
    "ExportConfigError",
    "ParallelismResolutionWarning",
]
