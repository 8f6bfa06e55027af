import sqlite3
from pathlib import Path

import pytest

from tablemap.core.interfaces import IRowStore
from tablemap.core.models import KeyRange
from tablemap.errors import EncodingError, StoreAccessError
from tablemap.storage.memory import InMemoryRowStore
from tablemap.storage.sqlite_store import TableMapStore


def test_stores_satisfy_the_protocol(sqlite_store: TableMapStore) -> None:
    assert isinstance(sqlite_store, IRowStore)
    assert isinstance(InMemoryRowStore(), IRowStore)


def test_put_get_and_replace(sqlite_store: TableMapStore) -> None:
    sqlite_store.put("k1", {"A": "1", "B": "2"})
    sqlite_store.put("k1", {"C": "3"})

    assert sqlite_store.get("k1") == {"C": "3"}
    assert sqlite_store.get("missing") is None
    assert sqlite_store.count() == 1


def test_scan_follows_insertion_order(sqlite_store: TableMapStore) -> None:
    sqlite_store.put_many((f"k{i}", {"n": str(i)}) for i in range(5))
    sqlite_store.put("empty", {})

    assert sqlite_store.keys() == ["k0", "k1", "k2", "k3", "k4", "empty"]
    assert list(sqlite_store.scan(KeyRange(1, 3))) == [("k1", {"n": "1"}), ("k2", {"n": "2"})]
    assert list(sqlite_store.scan(KeyRange(4, 10))) == [("k4", {"n": "4"}), ("empty", {})]
    assert list(sqlite_store.scan(KeyRange(2, 2))) == []


def test_scan_column_names(sqlite_store: TableMapStore) -> None:
    sqlite_store.put("a", {"x": "1", "y": "2"})
    sqlite_store.put("b", {})
    sqlite_store.put("c", {"z": "3"})

    assert list(sqlite_store.scan_column_names(KeyRange(0, 3))) == [["x", "y"], [], ["z"]]


def test_cursor_style_inserts(sqlite_store: TableMapStore) -> None:
    with pytest.raises(StoreAccessError):
        sqlite_store.insert("A", "x")

    sqlite_store.begin_record("item-1")
    sqlite_store.insert("A", "x")
    sqlite_store.insert_many({"B": "y", "A": "x2"})
    sqlite_store.begin_record("item-2")
    sqlite_store.insert("C", "z")

    assert sqlite_store.get("item-1") == {"A": "x2", "B": "y"}
    assert sqlite_store.get("item-2") == {"C": "z"}


def test_set_value_keeps_other_columns(sqlite_store: TableMapStore) -> None:
    sqlite_store.put("k", {"A": "1", "B": "2"})
    sqlite_store.set_value("k", "B", "20")
    sqlite_store.set_value("new", "Z", "9")

    assert sqlite_store.get("k") == {"A": "1", "B": "20"}
    assert sqlite_store.get("new") == {"Z": "9"}


def test_column_names_put_priority_first(sqlite_store: TableMapStore) -> None:
    sqlite_store.put("r1", {"A": "foo", "B": "bar"})
    sqlite_store.put("r2", {"A": "baz", "C": "doe"})

    assert sqlite_store.column_names() == ["A", "B", "C"]
    assert sqlite_store.column_names(["C", "Q"]) == ["C", "Q", "A", "B"]


def test_invalid_bytes_fail_on_read(sqlite_store: TableMapStore) -> None:
    sqlite_store.put("bad", {"A": b"\xff"})

    with pytest.raises(EncodingError):
        sqlite_store.get("bad")


def test_reader_sees_committed_data_and_is_read_only(sqlite_store: TableMapStore) -> None:
    sqlite_store.put("k", {"A": "1"})

    with sqlite_store.open_reader() as reader:
        assert reader.count() == 1
        assert reader.get("k") == {"A": "1"}
        with pytest.raises(sqlite3.OperationalError):
            reader._conn.execute("DELETE FROM records")


def test_fresh_store_discards_previous_file(tmp_path: Path) -> None:
    path = tmp_path / "s.sqlite"
    with TableMapStore(path) as store:
        store.put("k", {"A": "1"})

    with TableMapStore(path) as reopened:
        assert reopened.count() == 1

    with TableMapStore.create(path, fresh=True) as fresh:
        assert fresh.count() == 0
