import sqlite3
from pathlib import Path

import pyarrow.parquet as pq
import pytest

from tablemap.errors import ExportConfigError
from tablemap.orchestration.orchestrator import export_parquet, export_sqlite
from tablemap.storage.formats import CsvFormat, fragment_path
from tablemap.storage.memory import InMemoryRowStore


def test_fragment_names_sort_by_chunk_index(tmp_path: Path) -> None:
    names = [fragment_path(tmp_path, i, ".csv").name for i in (10, 2, 0)]

    assert sorted(names) == ["fragment_00000.csv", "fragment_00002.csv", "fragment_00010.csv"]


def test_csv_merge_writes_header_once(tmp_path: Path) -> None:
    fmt = CsvFormat()
    a = tmp_path / "a.csv"
    b = tmp_path / "b.csv"
    fmt.write_fragment(a, ["x", "y"], [["1", "2"]])
    fmt.write_fragment(b, ["x", "y"], [["3", ""], ["", "4"]])

    size = fmt.merge(tmp_path / "out.csv", ["x", "y"], [a, b])

    assert (tmp_path / "out.csv").read_text(encoding="utf-8") == "x,y\n1,2\n3,\n,4\n"
    assert size == len("x,y\n1,2\n3,\n,4\n")


@pytest.mark.asyncio
async def test_parquet_export(two_records: InMemoryRowStore, tmp_path: Path) -> None:
    out = tmp_path / "out.parquet"

    result = await export_parquet(two_records, out, worker_count=2, priority_columns=["A", "C"])

    table = pq.read_table(out)
    assert table.column_names == ["A", "C", "B"]
    assert table.to_pydict() == {"A": ["foo", "baz"], "C": ["", "doe"], "B": ["bar", ""]}
    assert result.rows_written == 2


@pytest.mark.asyncio
async def test_parquet_export_of_empty_store(tmp_path: Path) -> None:
    out = tmp_path / "out.parquet"

    await export_parquet(InMemoryRowStore(), out, priority_columns=["A"])

    assert pq.read_table(out).num_rows == 0
    with pytest.raises(ExportConfigError):
        await export_parquet(InMemoryRowStore(), tmp_path / "none.parquet")


@pytest.mark.asyncio
async def test_sqlite_export(two_records: InMemoryRowStore, tmp_path: Path) -> None:
    out = tmp_path / "out.sqlite"

    result = await export_sqlite(
        two_records, out, worker_count=2, priority_columns=["A", "C"], filters=[(2, "ar")], table="items"
    )

    conn = sqlite3.connect(out)
    try:
        cur = conn.execute("SELECT * FROM items")
        assert [d[0] for d in cur.description] == ["A", "C", "B"]
        assert cur.fetchall() == [("baz", "doe", "")]
    finally:
        conn.close()
    assert result.rows_filtered == 1
