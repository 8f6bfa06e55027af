"""Output formats for the export pipeline.

Each format knows how to write one chunk's rows as a self-contained
*fragment* and how to merge the fragments, in chunk order, into the final
file:

- `CsvFormat`:     CSV body fragments, merged by byte concatenation after a
                   single header line.
- `ParquetFormat`: all-string Parquet fragments, merged with one
                   `ParquetWriter` (one row group per chunk).
- `SqliteFormat`:  Parquet fragments loaded into one SQLite table with a
                   TEXT column per header column.

Formats only see plain paths; staging and the final atomic rename are the
orchestrator's job.
"""

from __future__ import annotations

import csv
import io
import shutil
import sqlite3
from collections.abc import Iterable, Sequence
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from tablemap.constants import CSV_LINE_TERMINATOR, CSV_SPECIAL_CHARS, FRAGMENT_PREFIX
from tablemap.errors import EncodingError, MergeIOError


def fragment_path(staging_dir: Path, index: int, suffix: str) -> Path:
    return staging_dir / f"{FRAGMENT_PREFIX}{index:05d}{suffix}"


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


class CsvFormat:
    """UTF-8 CSV, minimal quoting, `\\n` line endings."""

    name = "csv"
    suffix = ".csv"
    requires_columns = False

    def __init__(self, *, delimiter: str = ",") -> None:
        self.delimiter = delimiter

    def _writer(self, f: io.TextIOBase):
        return csv.writer(
            f,
            delimiter=self.delimiter,
            quotechar='"',
            doublequote=True,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator=CSV_LINE_TERMINATOR,
        )

    def _quote(self, value: str) -> str:
        if self.delimiter in value or any(c in value for c in CSV_SPECIAL_CHARS):
            return '"' + value.replace('"', '""') + '"'
        return value

    def _writerow(self, f: io.TextIOBase, writer, row: Sequence[str]) -> None:
        # QUOTE_MINIMAL only quotes CR when it is part of the line terminator
        if any("\r" in value for value in row):
            f.write(self.delimiter.join(self._quote(value) for value in row) + CSV_LINE_TERMINATOR)
        else:
            writer.writerow(row)

    def encode_header(self, columns: Sequence[str]) -> bytes:
        buf = io.StringIO()
        self._writerow(buf, self._writer(buf), columns)
        try:
            return buf.getvalue().encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncodingError(f"column name cannot be encoded as UTF-8: {e}") from e

    def write_fragment(
        self,
        path: Path,
        columns: Sequence[str],
        rows: Iterable[Sequence[str]],
    ) -> int:
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                writer = self._writer(f)
                for row in rows:
                    self._writerow(f, writer, row)
        except (UnicodeEncodeError, csv.Error) as e:
            raise EncodingError(f"cannot encode row as CSV: {e}") from e
        return path.stat().st_size

    def merge(
        self,
        out_path: Path,
        columns: Sequence[str],
        fragments: Sequence[Path],
    ) -> int:
        header = self.encode_header(columns)
        try:
            with open(out_path, "wb") as out:
                out.write(header)
                for frag in fragments:
                    with open(frag, "rb") as src:
                        shutil.copyfileobj(src, out)
        except OSError as e:
            raise MergeIOError(f"writing {out_path} failed: {e}") from e
        return out_path.stat().st_size


# ---------------------------------------------------------------------------
# Parquet
# ---------------------------------------------------------------------------


def string_schema(columns: Sequence[str]) -> pa.Schema:
    """Every exported column is text, so the Arrow schema is all strings."""
    return pa.schema([pa.field(c, pa.string()) for c in columns])


class ParquetFormat:
    name = "parquet"
    suffix = ".parquet"
    requires_columns = True

    def __init__(self, *, codec: str = "zstd") -> None:
        self.codec = codec

    def write_fragment(
        self,
        path: Path,
        columns: Sequence[str],
        rows: Iterable[Sequence[str]],
    ) -> int:
        cols: list[list[str]] = [[] for _ in columns]
        for row in rows:
            for buf, value in zip(cols, row):
                buf.append(value)
        schema = string_schema(columns)
        table = pa.Table.from_arrays(
            [pa.array(buf, type=pa.string()) for buf in cols],
            schema=schema,
        )
        pq.write_table(table, path, compression=self.codec)
        return path.stat().st_size

    def merge(
        self,
        out_path: Path,
        columns: Sequence[str],
        fragments: Sequence[Path],
    ) -> int:
        schema = string_schema(columns)
        try:
            with pq.ParquetWriter(out_path, schema, compression=self.codec) as writer:
                for frag in fragments:
                    table = pq.read_table(frag, schema=schema)
                    if table.num_rows:
                        writer.write_table(table)
        except (OSError, pa.ArrowException) as e:
            raise MergeIOError(f"writing {out_path} failed: {e}") from e
        return out_path.stat().st_size


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SqliteFormat(ParquetFormat):
    """Export into a single SQLite table; fragments are staged as Parquet."""

    name = "sqlite"

    def __init__(self, *, table: str = "records") -> None:
        super().__init__(codec="zstd")
        self.table = table

    def merge(
        self,
        out_path: Path,
        columns: Sequence[str],
        fragments: Sequence[Path],
    ) -> int:
        schema = string_schema(columns)
        col_list = ", ".join(_quote_ident(c) for c in columns)
        create = f"CREATE TABLE {_quote_ident(self.table)} ({', '.join(f'{_quote_ident(c)} TEXT' for c in columns)})"
        insert = (
            f"INSERT INTO {_quote_ident(self.table)} ({col_list}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        try:
            conn = sqlite3.connect(out_path)
            try:
                with conn:
                    conn.execute(create)
                    for frag in fragments:
                        table = pq.read_table(frag, schema=schema)
                        values = [c.to_pylist() for c in table.columns]
                        conn.executemany(insert, zip(*values))
            finally:
                conn.close()
        except (OSError, sqlite3.Error, pa.ArrowException) as e:
            raise MergeIOError(f"writing {out_path} failed: {e}") from e
        return out_path.stat().st_size
