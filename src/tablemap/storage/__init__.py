"""Storage components: the row store and the export output formats.

This package provides:
- TableMapStore / TableMapReader: SQLite-backed dynamic-column row store
- InMemoryRowStore: dict-backed store with the same contract
- CsvFormat / ParquetFormat / SqliteFormat: fragment writers and mergers
"""

from tablemap.storage.formats import CsvFormat, ParquetFormat, SqliteFormat
from tablemap.storage.memory import InMemoryRowStore
from tablemap.storage.sqlite_store import TableMapReader, TableMapStore

__all__ = [
    "CsvFormat",
    "ParquetFormat",
    "SqliteFormat",
    "InMemoryRowStore",
    "TableMapReader",
    "TableMapStore",
]
