from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from tablemap.constants import STAGING_PREFIX, TMP_SUFFIX
from tablemap.core.config import ExportConfig
from tablemap.core.interfaces import IFragmentFormat, IRowReader, IRowStore
from tablemap.core.models import (
    Chunk,
    ChunkStats,
    ExportResult,
    ExportState,
    Schema,
)
from tablemap.errors import (
    ExportConfigError,
    MergeIOError,
    TableMapError,
    WorkerFailure,
)
from tablemap.orchestration.utils import plan_chunks, plan_fixed_chunks, resolve_worker_count
from tablemap.projection.filters import FilterPredicate, should_skip
from tablemap.projection.prioritizer import project, resolve_column_order
from tablemap.projection.schema import prescan_schema
from tablemap.storage.formats import fragment_path

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[ChunkStats], None]


# ---------------------------------------------------------------------------
# Worker context
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class WorkerContext:
    """
    Read-only state shared by all export workers of one run.

    - `columns` is the global column order, fixed before any worker starts,
      so every fragment agrees on column positions.
    - `sem` bounds how many chunks are processed at once.
    - `abort` is set on the first failure; workers that have not started yet
      skip their chunk, workers already running finish and are discarded.
    """

    store: IRowStore
    fmt: IFragmentFormat
    columns: tuple[str, ...]
    predicates: tuple[FilterPredicate, ...]
    staging_dir: Path
    sem: asyncio.Semaphore
    abort: asyncio.Event
    on_chunk_done: ChunkCallback | None = None


@dataclass(slots=True)
class ChunkOutcome:
    stats: ChunkStats
    fragment: Path


# ---------------------------------------------------------------------------
# Export worker
# ---------------------------------------------------------------------------


def _chunk_rows(
    reader: IRowReader,
    chunk: Chunk,
    columns: Sequence[str],
    predicates: Sequence[FilterPredicate],
    stats: ChunkStats,
) -> Iterator[list[str]]:
    """Scan → project → filter, counting as rows go by."""
    for _, record in reader.scan(chunk.key_range):
        stats.scanned += 1
        row = project(record, columns)
        if should_skip(row, predicates):
            stats.filtered += 1
            continue
        stats.written += 1
        yield row


def export_chunk(ctx: WorkerContext, chunk: Chunk) -> ChunkOutcome:
    """Write one chunk's fragment. Blocking; runs in a worker thread.

    The reader is opened here, inside the thread that uses it.
    """
    stats = ChunkStats(index=chunk.index)
    path = fragment_path(ctx.staging_dir, chunk.index, ctx.fmt.suffix)
    reader = ctx.store.open_reader()
    try:
        rows = _chunk_rows(reader, chunk, ctx.columns, ctx.predicates, stats)
        stats.bytes = ctx.fmt.write_fragment(path, ctx.columns, rows)
    finally:
        reader.close()
    return ChunkOutcome(stats=stats, fragment=path)


async def run_chunk_worker(ctx: WorkerContext, chunk: Chunk) -> ChunkOutcome | None:
    """Process one chunk; returns None when skipped because the job aborted."""
    async with ctx.sem:
        if ctx.abort.is_set():
            return None
        t = time.perf_counter()
        try:
            outcome = await asyncio.to_thread(export_chunk, ctx, chunk)
            logger.debug(
                "chunk %d done: scanned=%d written=%d filtered=%d (%.2fs)",
                chunk.index,
                outcome.stats.scanned,
                outcome.stats.written,
                outcome.stats.filtered,
                time.perf_counter() - t,
            )
            if ctx.on_chunk_done is not None:
                ctx.on_chunk_done(outcome.stats)
        except Exception as e:
            raise WorkerFailure(chunk.index, e) from e
    return outcome


async def collect(tasks: list[asyncio.Task], abort: asyncio.Event) -> list[ChunkOutcome]:
    """Await all workers, failing fast on the first error.

    When several workers have failed by the time we look, the one with the
    lowest chunk index is reported.
    """
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        abort.set()
        for t in tasks:
            t.cancel()
        raise

    errors = [t.exception() for t in done if t.exception() is not None]
    if errors:
        abort.set()
        # Let in-flight workers finish; queued ones see `abort` and return.
        await asyncio.gather(*pending, return_exceptions=True)
        raise min(errors, key=lambda e: getattr(e, "chunk_index", 0))

    return [o for o in (t.result() for t in tasks) if o is not None]


# ---------------------------------------------------------------------------
# Domain service – ExportService
# ---------------------------------------------------------------------------


def _count_and_prescan(store: IRowStore) -> tuple[int, Schema]:
    """Row count and schema from one reader handle (opened in the calling thread)."""
    reader = store.open_reader()
    try:
        total = reader.count()
        return total, prescan_schema(reader, total)
    finally:
        reader.close()


class ExportService:
    """
    Runs one export through the states
    PLANNING → DISPATCHING → COLLECTING → MERGING → DONE (or FAILED).

    Output is merged into a private temporary file beside `<output>` and
    renamed over the final path only once every chunk succeeded; fragments
    live in a staging directory that is removed whatever the outcome.
    """

    def __init__(self, store: IRowStore, fmt: IFragmentFormat) -> None:
        self._store = store
        self._fmt = fmt
        self.state = ExportState.PLANNING

    def _enter(self, state: ExportState) -> None:
        logger.debug("export %s: %s → %s", self._fmt.name, self.state.value, state.value)
        self.state = state

    async def run(
        self,
        config: ExportConfig,
        *,
        on_chunk_done: ChunkCallback | None = None,
    ) -> ExportResult:
        t0 = time.perf_counter()
        self._enter(ExportState.PLANNING)
        try:
            return await self._run(config, on_chunk_done, t0)
        except BaseException:
            self._enter(ExportState.FAILED)
            raise

    async def _run(
        self,
        config: ExportConfig,
        on_chunk_done: ChunkCallback | None,
        t0: float,
    ) -> ExportResult:
        # 1) Plan: sizes, chunks, global column order
        total, schema = await asyncio.to_thread(_count_and_prescan, self._store)
        workers = resolve_worker_count(config.worker_count)
        if config.rows_per_chunk:
            chunks = plan_fixed_chunks(total, config.rows_per_chunk)
        else:
            chunks = plan_chunks(total, workers)
        columns = resolve_column_order(config.priority_columns, schema)
        if self._fmt.requires_columns and not columns:
            raise ExportConfigError(f"{self._fmt.name} export needs at least one column")
        logger.info(
            "exporting %d rows, %d columns in %d chunks with %d workers → %s",
            total,
            len(columns),
            len(chunks),
            workers,
            config.output_path,
        )

        output_path = Path(config.output_path)
        staging_dir: Path | None = None
        tmp_out: Path | None = None
        try:
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                staging_dir = Path(
                    tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=config.staging_dir or output_path.parent)
                )
                # Same directory as the output so the final rename stays atomic
                tmp_out = output_path.parent / f"{staging_dir.name}{TMP_SUFFIX}"
                tmp_out.touch(exist_ok=False)
            except OSError as e:
                raise MergeIOError(f"cannot prepare output directory for {output_path}: {e}") from e

            # 2) Dispatch one worker per chunk
            self._enter(ExportState.DISPATCHING)
            abort = asyncio.Event()
            ctx = WorkerContext(
                store=self._store,
                fmt=self._fmt,
                columns=columns,
                predicates=tuple(config.filters),
                staging_dir=staging_dir,
                sem=asyncio.Semaphore(workers),
                abort=abort,
                on_chunk_done=on_chunk_done,
            )
            tasks = [asyncio.create_task(run_chunk_worker(ctx, c)) for c in chunks]

            # 3) Collect, fail fast
            self._enter(ExportState.COLLECTING)
            outcomes = await collect(tasks, abort)

            # 4) Merge strictly by chunk index
            self._enter(ExportState.MERGING)
            outcomes.sort(key=lambda o: o.stats.index)
            nbytes = await asyncio.to_thread(
                self._merge, tmp_out, output_path, columns, [o.fragment for o in outcomes]
            )
        finally:
            if staging_dir is not None:
                shutil.rmtree(staging_dir, ignore_errors=True)
            if tmp_out is not None and tmp_out.exists():
                tmp_out.unlink()

        self._enter(ExportState.DONE)
        stats = [o.stats for o in outcomes]
        result = ExportResult(
            path=output_path,
            columns=columns,
            rows_written=sum(s.written for s in stats),
            rows_filtered=sum(s.filtered for s in stats),
            rows_scanned=sum(s.scanned for s in stats),
            bytes_written=nbytes,
            chunks=len(chunks),
            worker_count=workers,
            elapsed_s=time.perf_counter() - t0,
            chunk_stats=stats,
        )
        logger.info(
            "wrote %s (rows=%d, filtered=%d, bytes=%d) in %.2fs",
            output_path,
            result.rows_written,
            result.rows_filtered,
            result.bytes_written,
            result.elapsed_s,
        )
        return result

    def _merge(
        self,
        tmp_out: Path,
        output_path: Path,
        columns: Sequence[str],
        fragments: list[Path],
    ) -> int:
        try:
            nbytes = self._fmt.merge(tmp_out, columns, fragments)
            if output_path.exists():
                logger.warning("replacing existing file %s", output_path)
            os.replace(tmp_out, output_path)
        except TableMapError:
            raise
        except OSError as e:
            raise MergeIOError(f"cannot write {output_path}: {e}") from e
        return nbytes
