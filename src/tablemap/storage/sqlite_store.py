"""SQLite-backed dynamic-column row store.

Layout
------
- `records`         -> one row per record: (id, key); `id` gives the native
                       scan order (insertion order of keys).
- `record_columns`  -> one row per (record, column): (record_id, name, value)
                       with the value stored as a BLOB produced by the codec.

Caution
-------
The connection pragmas favour speed over durability (`synchronous=OFF`). The
store is a scratch area for building an export, not a system of record: if
the process dies mid-write the file may be corrupt, which is why
`fresh=True` simply deletes any previous file.
"""

from __future__ import annotations

import itertools
import logging
import sqlite3
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

from tablemap.constants import SQLITE_PRAGMAS
from tablemap.core.models import KeyRange, Record, RecordKey, Schema
from tablemap.errors import StoreAccessError
from tablemap.projection.prioritizer import resolve_column_order
from tablemap.projection.schema import prescan_schema
from tablemap.storage.codec import decode_record, encode_record

logger = logging.getLogger(__name__)

_DDL = """
CREATE TABLE IF NOT EXISTS records
(
    id  INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    key TEXT    NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS record_columns
(
    id        INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    record_id INTEGER NOT NULL
        REFERENCES records (id) ON UPDATE CASCADE ON DELETE CASCADE,
    name      TEXT    NOT NULL,
    value     BLOB,
    UNIQUE (record_id, name)
);
"""

_RANGE = "(SELECT id, key FROM records ORDER BY id LIMIT ? OFFSET ?)"

_SCAN_SQL = f"""
SELECT r.id, r.key, c.name, c.value
FROM {_RANGE} AS r
LEFT JOIN record_columns AS c ON c.record_id = r.id
ORDER BY r.id, c.id
"""

_SCAN_NAMES_SQL = f"""
SELECT r.id, c.name
FROM {_RANGE} AS r
LEFT JOIN record_columns AS c ON c.record_id = r.id
ORDER BY r.id, c.id
"""

_UPSERT_COLUMN_SQL = """
INSERT INTO record_columns (record_id, name, value) VALUES (?, ?, ?)
ON CONFLICT (record_id, name) DO UPDATE SET value = excluded.value
"""


class _SqliteReader:
    """Read operations shared by the store and its read-only handles."""

    _conn: sqlite3.Connection
    path: Path

    def get(self, key: RecordKey) -> Record | None:
        try:
            row = self._conn.execute("SELECT id FROM records WHERE key = ?", (key,)).fetchone()
            if row is None:
                return None
            pairs = self._conn.execute(
                "SELECT name, value FROM record_columns WHERE record_id = ? ORDER BY id",
                (row[0],),
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreAccessError(f"get({key!r}) failed: {e}") from e
        return decode_record(pairs)

    def count(self) -> int:
        try:
            return int(self._conn.execute("SELECT count(*) FROM records").fetchone()[0])
        except sqlite3.Error as e:
            raise StoreAccessError(f"count failed: {e}") from e

    def keys(self) -> list[RecordKey]:
        try:
            return [r[0] for r in self._conn.execute("SELECT key FROM records ORDER BY id")]
        except sqlite3.Error as e:
            raise StoreAccessError(f"listing keys failed: {e}") from e

    def _query_range(self, sql: str, key_range: KeyRange) -> Iterator[tuple[Any, ...]]:
        if key_range.is_empty:
            return
        try:
            cursor = self._conn.execute(sql, (len(key_range), key_range.start))
            yield from cursor
        except sqlite3.Error as e:
            raise StoreAccessError(
                f"scan of [{key_range.start}, {key_range.stop}) failed: {e}"
            ) from e

    def scan(self, key_range: KeyRange) -> Iterator[tuple[RecordKey, Record]]:
        rows = self._query_range(_SCAN_SQL, key_range)
        for (_, key), group in itertools.groupby(rows, key=lambda r: (r[0], r[1])):
            yield key, decode_record((name, value) for _, _, name, value in group if name is not None)

    def scan_column_names(self, key_range: KeyRange) -> Iterator[Sequence[str]]:
        rows = self._query_range(_SCAN_NAMES_SQL, key_range)
        for _, group in itertools.groupby(rows, key=lambda r: r[0]):
            yield [name for _, name in group if name is not None]

    def iter_records(self) -> Iterator[tuple[RecordKey, Record]]:
        return self.scan(KeyRange(0, self.count()))

    def schema(self) -> Schema:
        return prescan_schema(self)

    def column_names(self, priority_columns: Iterable[str] = ()) -> list[str]:
        """Distinct column names with `priority_columns` first."""
        return list(resolve_column_order(priority_columns, self.schema()))

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class TableMapReader(_SqliteReader):
    """Read-only connection to a `TableMapStore` file, one per worker."""

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            self._conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as e:
            raise StoreAccessError(f"cannot open {path} read-only: {e}") from e


class TableMapStore(_SqliteReader):
    """Writable store; hands out `TableMapReader`s for concurrent scans.

    Two write styles are supported:

    - `put(key, record)` / `put_many(items)` replace whole records.
    - `begin_record(key)` followed by `insert(column, value)` or
      `insert_many(mapping)` builds a record column by column.
    """

    def __init__(self, path: str | Path, *, fresh: bool = False) -> None:
        self.path = Path(path)
        if fresh:
            self._remove_files()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._current_id: int | None = None
        try:
            self._conn = sqlite3.connect(self.path)
            for pragma in SQLITE_PRAGMAS:
                self._conn.execute(pragma)
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_DDL)
        except sqlite3.Error as e:
            raise StoreAccessError(f"cannot initialise store at {self.path}: {e}") from e
        logger.debug("store ready at %s", self.path)

    @classmethod
    def create(cls, path: str | Path, *, fresh: bool = True) -> TableMapStore:
        return cls(path, fresh=fresh)

    def _remove_files(self) -> None:
        for p in (self.path, Path(f"{self.path}-wal"), Path(f"{self.path}-shm")):
            if p.exists():
                logger.warning("removing store file %s", p)
                p.unlink()

    # ---------- whole-record writes ----------

    def _record_id(self, key: RecordKey) -> int:
        self._conn.execute("INSERT INTO records (key) VALUES (?) ON CONFLICT (key) DO NOTHING", (key,))
        return int(self._conn.execute("SELECT id FROM records WHERE key = ?", (key,)).fetchone()[0])

    def _replace_columns(self, record_id: int, record: Mapping[str, Any]) -> None:
        self._conn.execute("DELETE FROM record_columns WHERE record_id = ?", (record_id,))
        self._conn.executemany(
            "INSERT INTO record_columns (record_id, name, value) VALUES (?, ?, ?)",
            [(record_id, name, raw) for name, raw in encode_record(record)],
        )

    def put(self, key: RecordKey, record: Mapping[str, Any]) -> None:
        try:
            with self._conn:
                self._replace_columns(self._record_id(key), record)
        except sqlite3.Error as e:
            raise StoreAccessError(f"put({key!r}) failed: {e}") from e

    def put_many(self, items: Iterable[tuple[RecordKey, Mapping[str, Any]]]) -> int:
        """Bulk-load records in a single transaction. Returns the number written."""
        n = 0
        try:
            with self._conn:
                for key, record in items:
                    self._replace_columns(self._record_id(key), record)
                    n += 1
        except sqlite3.Error as e:
            raise StoreAccessError(f"bulk put failed after {n} records: {e}") from e
        return n

    # ---------- cursor-style writes ----------

    def begin_record(self, key: RecordKey) -> int:
        """Select the record `insert` writes into, creating it if needed."""
        try:
            with self._conn:
                self._current_id = self._record_id(key)
        except sqlite3.Error as e:
            raise StoreAccessError(f"cannot start record {key!r}: {e}") from e
        return self._current_id

    def _require_current(self) -> int:
        if self._current_id is None:
            raise StoreAccessError("no current record; call begin_record() first")
        return self._current_id

    def insert(self, column: str, value: Any) -> None:
        self.insert_many({column: value})

    def insert_many(self, values: Mapping[str, Any]) -> None:
        record_id = self._require_current()
        pairs = [(record_id, name, raw) for name, raw in encode_record(values)]
        try:
            with self._conn:
                self._conn.executemany(_UPSERT_COLUMN_SQL, pairs)
        except sqlite3.Error as e:
            raise StoreAccessError(f"insert into record {record_id} failed: {e}") from e

    def set_value(self, key: RecordKey, column: str, value: Any) -> None:
        """Set a single column on `key` without touching its other columns."""
        try:
            with self._conn:
                record_id = self._record_id(key)
                self._conn.executemany(
                    _UPSERT_COLUMN_SQL,
                    [(record_id, name, raw) for name, raw in encode_record({column: value})],
                )
        except sqlite3.Error as e:
            raise StoreAccessError(f"set_value({key!r}, {column!r}) failed: {e}") from e

    def open_reader(self) -> TableMapReader:
        return TableMapReader(self.path)
