from pathlib import Path

import pytest

from tablemap.storage.memory import InMemoryRowStore
from tablemap.storage.sqlite_store import TableMapStore

TWO_RECORDS = {
    "r1": {"A": "foo", "B": "bar"},
    "r2": {"A": "baz", "C": "doe"},
}


@pytest.fixture
def two_records() -> InMemoryRowStore:
    return InMemoryRowStore(TWO_RECORDS)


@pytest.fixture
def sqlite_store(tmp_path: Path):
    store = TableMapStore.create(tmp_path / "store.sqlite")
    yield store
    store.close()
