"""Core data models, interfaces and configuration.

This package provides:
- Data models (Schema, KeyRange, Chunk, ChunkStats, ExportResult)
- Store and output-format interfaces (IRowReader, IRowStore, IFragmentFormat)
- Configuration classes (ExportConfig, ExportProfile)
"""

from tablemap.core.config import ExportConfig, ExportProfile
from tablemap.core.interfaces import IFragmentFormat, IRowReader, IRowStore
from tablemap.core.models import (
    Chunk,
    ChunkStats,
    ExportResult,
    ExportState,
    KeyRange,
    Record,
    RecordKey,
    Schema,
)

__all__ = [
    "ExportConfig",
    "ExportProfile",
    "IFragmentFormat",
    "IRowReader",
    "IRowStore",
    "Chunk",
    "ChunkStats",
    "ExportResult",
    "ExportState",
    "KeyRange",
    "Record",
    "RecordKey",
    "Schema",
]
