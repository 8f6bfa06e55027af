import pytest

from tablemap.core.models import KeyRange, Schema
from tablemap.errors import ExportConfigError
from tablemap.projection.filters import FilterPredicate, normalize_filters, parse_filter, should_skip
from tablemap.projection.prioritizer import project, resolve_column_order
from tablemap.projection.schema import SchemaRegistry, prescan_schema
from tablemap.storage.memory import InMemoryRowStore


# ---------- schema registry ----------


def test_registry_keeps_first_seen_order() -> None:
    reg = SchemaRegistry()
    assert reg.register({"A": "1", "B": "2"}) == 2
    assert reg.register({"C": "3", "A": "4"}) == 1
    assert reg.register({"B": "5"}) == 0

    assert reg.snapshot() == Schema(("A", "B", "C"))
    assert "C" in reg
    assert len(reg) == 3


def test_snapshot_is_detached_from_registry() -> None:
    reg = SchemaRegistry()
    reg.register_names(["A"])
    snap = reg.snapshot()
    reg.register_names(["B"])

    assert tuple(snap) == ("A",)
    assert tuple(reg.snapshot()) == ("A", "B")


def test_prescan_schema(two_records: InMemoryRowStore) -> None:
    assert tuple(prescan_schema(two_records)) == ("A", "B", "C")
    assert tuple(prescan_schema(two_records, total_rows=1)) == ("A", "B")


# ---------- prioritizer ----------


def test_priority_columns_lead_and_are_not_repeated() -> None:
    schema = Schema(("A", "B", "C"))

    assert resolve_column_order(["A", "C"], schema) == ("A", "C", "B")
    assert resolve_column_order([], schema) == ("A", "B", "C")


def test_unseen_priority_columns_are_kept() -> None:
    assert resolve_column_order(["Z", "B"], Schema(("A", "B"))) == ("Z", "B", "A")


def test_duplicate_priority_columns_are_rejected() -> None:
    with pytest.raises(ExportConfigError):
        resolve_column_order(["A", "B", "A"], Schema(("A",)))


def test_project_fills_missing_columns_with_empty_strings() -> None:
    order = ("A", "C", "B")

    assert project({"A": "foo", "B": "bar"}, order) == ["foo", "", "bar"]
    assert project({"A": "baz", "C": "doe"}, order) == ["baz", "doe", ""]
    assert project({}, order) == ["", "", ""]


# ---------- filters ----------


def test_filter_matches_substring_case_sensitively() -> None:
    preds = [FilterPredicate(1, "oe")]

    assert should_skip(["baz", "doe", ""], preds)
    assert not should_skip(["baz", "DOE", ""], preds)
    assert not should_skip(["foo", "", "bar"], preds)


def test_any_predicate_is_enough() -> None:
    preds = [FilterPredicate(0, "x"), FilterPredicate(2, "bar")]

    assert should_skip(["foo", "", "bar"], preds)
    assert not should_skip(["foo", "", "baz"], preds)
    assert not should_skip(["foo"], [])


def test_filter_beyond_row_width_never_matches() -> None:
    assert not should_skip(["a", "b"], [FilterPredicate(5, "a")])


@pytest.mark.parametrize("position, needle", [(-1, "x"), (0, "")])
def test_invalid_predicates(position: int, needle: str) -> None:
    with pytest.raises(ExportConfigError):
        FilterPredicate(position, needle)


def test_parse_filter() -> None:
    assert parse_filter("1:doe") == FilterPredicate(1, "doe")
    assert parse_filter("0:a:b") == FilterPredicate(0, "a:b")
    for bad in ("doe", "x:doe", "1:"):
        with pytest.raises(ExportConfigError):
            parse_filter(bad)


def test_normalize_filters_accepts_tuples() -> None:
    assert normalize_filters([(1, "doe"), FilterPredicate(0, "f")]) == (
        FilterPredicate(1, "doe"),
        FilterPredicate(0, "f"),
    )


def test_key_range_validation() -> None:
    assert len(KeyRange(3, 7)) == 4
    assert KeyRange(2, 2).is_empty
    with pytest.raises(ValueError):
        KeyRange(5, 4)
