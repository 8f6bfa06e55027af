"""Export entry points: row store → chunked workers → one output file.

This module provides two layers:

1) `run_export(...)`:
   - Runs an `ExportService` for a given store, output format and config.
   - Depends only on the `IRowStore` / `IFragmentFormat` interfaces.

2) `export_csv(...)`, `export_parquet(...)`, `export_sqlite(...)`:
   - Convenience wrappers that build the `ExportConfig` and pick the
     concrete format.

Every entry point returns an `ExportResult` on success and raises the first
fatal error otherwise (`WorkerFailure`, `StoreAccessError`, `MergeIOError`,
`ExportConfigError`); no partial file is ever left at the output path.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from tablemap.core.config import ExportConfig
from tablemap.core.interfaces import IFragmentFormat, IRowStore
from tablemap.core.models import ExportResult
from tablemap.core.use_cases.export import ChunkCallback, ExportService
from tablemap.projection.filters import FilterLike, normalize_filters
from tablemap.storage.formats import CsvFormat, ParquetFormat, SqliteFormat


async def run_export(
    store: IRowStore,
    config: ExportConfig,
    fmt: IFragmentFormat,
    *,
    on_chunk_done: ChunkCallback | None = None,
) -> ExportResult:
    service = ExportService(store, fmt)
    return await service.run(config, on_chunk_done=on_chunk_done)


def _config(
    output_path: str | Path,
    worker_count: int | None,
    priority_columns: Iterable[str],
    filters: Iterable[FilterLike],
    rows_per_chunk: int | None,
    staging_dir: str | Path | None,
) -> ExportConfig:
    return ExportConfig(
        output_path=Path(output_path),
        worker_count=worker_count,
        priority_columns=tuple(priority_columns),
        filters=normalize_filters(filters),
        rows_per_chunk=rows_per_chunk,
        staging_dir=Path(staging_dir) if staging_dir is not None else None,
    )


async def export_csv(
    store: IRowStore,
    output_path: str | Path,
    worker_count: int | None = None,
    priority_columns: Iterable[str] = (),
    filters: Iterable[FilterLike] = (),
    *,
    rows_per_chunk: int | None = None,
    staging_dir: str | Path | None = None,
    on_chunk_done: ChunkCallback | None = None,
) -> ExportResult:
    """Export every record of `store` to one CSV file.

    Parameters
    ----------
    store : IRowStore
        Source records; read-only for the duration of the export.
    output_path : str | Path
        Final CSV path. Written to a private temporary file beside it and renamed on success.
    worker_count : int | None
        Parallel workers; None or < 1 means "use the CPU count".
    priority_columns : Iterable[str]
        Leading header columns, in this order, present even if no record has them.
    filters : Iterable[FilterPredicate | tuple[int, str]]
        `(position, substring)` pairs; position is 0-based in the header.
        A row is dropped when any filter's substring occurs in its cell.
    rows_per_chunk : int | None
        Fixed chunk size instead of one chunk per worker.
    """
    config = _config(output_path, worker_count, priority_columns, filters, rows_per_chunk, staging_dir)
    return await run_export(store, config, CsvFormat(), on_chunk_done=on_chunk_done)


async def export_parquet(
    store: IRowStore,
    output_path: str | Path,
    worker_count: int | None = None,
    priority_columns: Iterable[str] = (),
    filters: Iterable[FilterLike] = (),
    *,
    rows_per_chunk: int | None = None,
    staging_dir: str | Path | None = None,
    codec: str = "zstd",
    on_chunk_done: ChunkCallback | None = None,
) -> ExportResult:
    """Same pipeline as `export_csv`, producing one all-string Parquet file."""
    config = _config(output_path, worker_count, priority_columns, filters, rows_per_chunk, staging_dir)
    return await run_export(store, config, ParquetFormat(codec=codec), on_chunk_done=on_chunk_done)


async def export_sqlite(
    store: IRowStore,
    output_path: str | Path,
    worker_count: int | None = None,
    priority_columns: Iterable[str] = (),
    filters: Iterable[FilterLike] = (),
    *,
    table: str = "records",
    rows_per_chunk: int | None = None,
    staging_dir: str | Path | None = None,
    on_chunk_done: ChunkCallback | None = None,
) -> ExportResult:
    """Same pipeline as `export_csv`, producing a SQLite file with one TEXT table."""
    config = _config(output_path, worker_count, priority_columns, filters, rows_per_chunk, staging_dir)
    return await run_export(store, config, SqliteFormat(table=table), on_chunk_done=on_chunk_done)
