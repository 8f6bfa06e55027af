import json
from pathlib import Path

from click.testing import CliRunner

from tablemap.cli import cli
from tablemap.storage.sqlite_store import TableMapStore


def _seed(db: Path) -> None:
    with TableMapStore.create(db) as store:
        store.put("r1", {"A": "foo", "B": "bar"})
        store.put("r2", {"A": "baz", "C": "doe"})


def test_seed_and_count(tmp_path: Path) -> None:
    db = tmp_path / "db.sqlite"
    runner = CliRunner()

    seeded = runner.invoke(cli, ["seed", "--db", str(db), "--items", "25", "--columns", "6", "--seed", "1"])
    assert seeded.exit_code == 0, seeded.output

    counted = runner.invoke(cli, ["count", "--db", str(db)])
    assert counted.exit_code == 0
    assert counted.output.strip() == "25"


def test_export_csv_command(tmp_path: Path) -> None:
    db = tmp_path / "db.sqlite"
    out = tmp_path / "out.csv"
    _seed(db)

    result = CliRunner().invoke(
        cli,
        ["export-csv", "--db", str(db), "--out", str(out), "--workers", "2",
         "--priority", "A", "--priority", "C", "--filter", "1:doe"],
    )

    assert result.exit_code == 0, result.output
    assert out.read_text(encoding="utf-8") == "A,C,B\nfoo,,bar\n"


def test_export_with_profile(tmp_path: Path) -> None:
    db = tmp_path / "db.sqlite"
    out = tmp_path / "out.csv"
    profile = tmp_path / "profile.json"
    profile.write_text(json.dumps({"priority_columns": ["C"]}), encoding="utf-8")
    _seed(db)

    result = CliRunner().invoke(
        cli, ["export-csv", "--db", str(db), "--out", str(out), "--profile", str(profile)]
    )

    assert result.exit_code == 0, result.output
    assert out.read_text(encoding="utf-8") == "C,A,B\n,foo,bar\ndoe,baz,\n"


def test_bad_filter_is_a_usage_error(tmp_path: Path) -> None:
    db = tmp_path / "db.sqlite"
    _seed(db)

    result = CliRunner().invoke(
        cli, ["export-csv", "--db", str(db), "--out", str(tmp_path / "o.csv"), "--filter", "doe"]
    )

    assert result.exit_code == 2
    assert not (tmp_path / "o.csv").exists()


def test_library_errors_become_click_errors(tmp_path: Path) -> None:
    db = tmp_path / "db.sqlite"
    _seed(db)

    result = CliRunner().invoke(
        cli,
        ["export-csv", "--db", str(db), "--out", str(tmp_path / "o.csv"), "--priority", "A", "--priority", "A"],
    )

    assert result.exit_code == 1
    assert "duplicate priority columns" in result.output


def test_missing_store(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["count", "--db", str(tmp_path / "nope.sqlite")])

    assert result.exit_code == 1
    assert "does not exist" in result.output
