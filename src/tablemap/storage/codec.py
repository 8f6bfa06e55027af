"""Row codec: dynamic-column records <-> the store's byte representation.

A record is stored as one `(column name, value bytes)` pair per column.
Values are UTF-8 text on the way in; on the way out, bytes that are not
valid UTF-8 raise `EncodingError` instead of being replaced, so a corrupt
value can never reach the CSV output silently.

Design notes
------------
- Non-string values are stringified (ints, decimals, ...), matching how
  dynamic columns are always kept as text.
- `None` means "column absent" and is not stored.
- Raw `bytes` are stored as-is and validated when read back.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from tablemap.core.models import Record
from tablemap.errors import EncodingError

EncodedRecord = list[tuple[str, bytes]]


def encode_value(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    text = value if isinstance(value, str) else str(value)
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"value {text!r} is not encodable as UTF-8") from e


def decode_value(raw: bytes | str) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return bytes(raw).decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(f"stored value is not valid UTF-8: {bytes(raw)[:32]!r}") from e


def encode_record(record: Mapping[str, Any]) -> EncodedRecord:
    """Encode a record into `(name, bytes)` pairs, preserving column order."""
    out: EncodedRecord = []
    for name, value in record.items():
        if not isinstance(name, str) or not name:
            raise EncodingError(f"column names must be non-empty strings, got {name!r}")
        if value is None:
            continue
        out.append((name, encode_value(value)))
    return out


def decode_record(pairs: Iterable[tuple[str, bytes | str]]) -> Record:
    """Decode stored pairs back into a record (later duplicates win)."""
    return {name: decode_value(raw) for name, raw in pairs}
