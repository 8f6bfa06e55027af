"""In-memory row store (insertion-ordered), for tests and embedding.

Values go through the same codec as the SQLite store, so invalid bytes
surface as `EncodingError` at scan time exactly as they would on disk.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from tablemap.core.models import KeyRange, Record, RecordKey
from tablemap.storage.codec import EncodedRecord, decode_record, encode_record


class InMemoryRowStore:
    def __init__(self, records: Mapping[RecordKey, Mapping[str, Any]] | None = None) -> None:
        self._data: dict[RecordKey, EncodedRecord] = {}
        for key, record in (records or {}).items():
            self.put(key, record)

    def put(self, key: RecordKey, record: Mapping[str, Any]) -> None:
        self._data[key] = encode_record(record)

    def get(self, key: RecordKey) -> Record | None:
        pairs = self._data.get(key)
        return None if pairs is None else decode_record(pairs)

    def count(self) -> int:
        return len(self._data)

    def _slice(self, key_range: KeyRange) -> list[tuple[RecordKey, EncodedRecord]]:
        return list(self._data.items())[key_range.start : key_range.stop]

    def scan(self, key_range: KeyRange) -> Iterator[tuple[RecordKey, Record]]:
        for key, pairs in self._slice(key_range):
            yield key, decode_record(pairs)

    def scan_column_names(self, key_range: KeyRange) -> Iterator[Sequence[str]]:
        for _, pairs in self._slice(key_range):
            yield [name for name, _ in pairs]

    def open_reader(self) -> InMemoryRowStore:
        # Read-only during export, so the handle can be shared
        return self

    def close(self) -> None:
        pass
