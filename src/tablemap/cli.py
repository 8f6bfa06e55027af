import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from tablemap.core.config import ExportProfile, merge_profile
from tablemap.core.models import ChunkStats, ExportResult
from tablemap.errors import ExportConfigError, TableMapError
from tablemap.orchestration.orchestrator import run_export
from tablemap.projection.filters import parse_filter
from tablemap.storage.formats import CsvFormat, ParquetFormat, SqliteFormat
from tablemap.storage.sqlite_store import TableMapStore

console = Console()


@click.group()
@click.option("-v", "--verbose", count=True, help="-v for INFO, -vv for DEBUG")
def cli(verbose: int) -> None:
    """tablemap: dynamic-column row store with parallel CSV export."""
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def _open_store(db: str) -> TableMapStore:
    path = Path(db)
    if not path.exists():
        raise click.ClickException(f"store {path} does not exist")
    try:
        return TableMapStore(path)
    except TableMapError as e:
        raise click.ClickException(str(e)) from e


@cli.command("seed")
@click.option("--db", required=True, help="Store file to (re)create")
@click.option("--items", type=int, default=1_000, show_default=True, help="Records to generate")
@click.option("--columns", type=int, default=400, show_default=True, help="Size of the column pool")
@click.option("--seed", "rng_seed", type=int, default=None, help="Random seed")
def seed_cmd(db: str, items: int, columns: int, rng_seed: int | None) -> None:
    """Create a fresh store filled with random sparse records."""
    from tablemap.sample import generate_random_dataset

    with TableMapStore.create(db, fresh=True) as store:
        n = generate_random_dataset(store, items=items, columns=columns, seed=rng_seed)
    console.print(f"[bold]seeded[/]: {n:,} records → {db}")


@cli.command("count")
@click.option("--db", required=True, help="Store file")
def count_cmd(db: str) -> None:
    """Print the number of records in the store."""
    with _open_store(db) as store:
        console.print(store.count())


@cli.command("columns")
@click.option("--db", required=True, help="Store file")
@click.option("--priority", "priority", multiple=True, help="Leading column; repeat to add more")
def columns_cmd(db: str, priority: tuple[str, ...]) -> None:
    """Print the export column order (priority columns first)."""
    with _open_store(db) as store:
        try:
            names = store.column_names(priority)
        except TableMapError as e:
            raise click.ClickException(str(e)) from e
    for i, name in enumerate(names):
        console.print(f"{i:>4}  {name}")


def _parse_filters(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]):
    try:
        return tuple(parse_filter(v) for v in values)
    except ExportConfigError as e:
        raise click.BadParameter(str(e)) from e


def export_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every export command."""
    options = [
        click.option("--db", required=True, help="Store file"),
        click.option("--out", "out", required=True, help="Output file"),
        click.option("--workers", type=int, default=None, help="Parallel workers [default: CPU count]"),
        click.option("--priority", "priority", multiple=True, help="Leading column; repeat to add more"),
        click.option(
            "--filter",
            "filters",
            multiple=True,
            callback=_parse_filters,
            help="POSITION:SUBSTRING (0-based header position); drops matching rows; repeatable",
        ),
        click.option("--rows-per-chunk", type=int, default=None, help="Fixed chunk size instead of one chunk per worker"),
        click.option(
            "--profile",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            default=None,
            help="JSON export profile (priority_columns, filters, workers, rows_per_chunk)",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _run_export(fmt: Any, db: str, out: str, workers, priority, filters, rows_per_chunk, profile) -> None:
    try:
        loaded = ExportProfile.load(profile) if profile else None
    except (OSError, ValueError) as e:
        raise click.ClickException(f"invalid profile {profile}: {e}") from e

    try:
        config = merge_profile(
            loaded,
            output_path=Path(out),
            worker_count=workers,
            priority_columns=priority,
            filters=filters,
            rows_per_chunk=rows_per_chunk,
        )
    except ExportConfigError as e:
        raise click.ClickException(str(e)) from e

    progress = Progress(
        SpinnerColumn(),
        TextColumn(f"[bold]exporting {fmt.name}[/]"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn(" • {task.description}"),
        console=console,
        transient=False,
        expand=True,
    )
    written = 0

    with _open_store(db) as store, progress:
        task = progress.add_task(description="planning", total=None)

        def on_chunk_done(stats: ChunkStats) -> None:
            nonlocal written
            written += stats.written
            progress.update(task, advance=1, description=f"{written:,} rows")

        try:
            result: ExportResult = asyncio.run(run_export(store, config, fmt, on_chunk_done=on_chunk_done))
        except TableMapError as e:
            raise click.ClickException(str(e)) from e
        progress.update(task, total=result.chunks, completed=result.chunks)

    console.print(
        f"[bold]done[/]: {result.rows_written:,} rows • {result.bytes_written:,} bytes • "
        f"{result.elapsed_s:.2f}s → {result.path}"
    )
    console.print(
        f"[bold]summary[/]: "
        f"[green]written[/]={result.rows_written}  "
        f"[yellow]filtered[/]={result.rows_filtered}  "
        f"(chunks={result.chunks}, workers={result.worker_count}, columns={len(result.columns)})"
    )


@cli.command("export-csv")
@export_options
def export_csv_cmd(**kwargs: Any) -> None:
    """Export all records to a single CSV file."""
    _run_export(CsvFormat(), **kwargs)


@cli.command("export-parquet")
@export_options
@click.option("--codec", default="zstd", show_default=True, help="Parquet compression codec")
def export_parquet_cmd(codec: str, **kwargs: Any) -> None:
    """Export all records to a single Parquet file (all columns as strings)."""
    _run_export(ParquetFormat(codec=codec), **kwargs)


@cli.command("export-sqlite")
@export_options
@click.option("--table", default="records", show_default=True, help="Destination table name")
def export_sqlite_cmd(table: str, **kwargs: Any) -> None:
    """Export all records into one table of a new SQLite file."""
    _run_export(SqliteFormat(table=table), **kwargs)


if __name__ == "__main__":
    cli()
