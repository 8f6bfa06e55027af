import json
from pathlib import Path

import pydantic
import pytest

from tablemap.core.config import ExportProfile, merge_profile
from tablemap.projection.filters import FilterPredicate


def test_profile_load(tmp_path: Path) -> None:
    path = tmp_path / "profile.json"
    path.write_text(
        json.dumps(
            {
                "priority_columns": ["A", "C"],
                "filters": [{"position": 1, "contains": "doe"}],
                "workers": 3,
            }
        ),
        encoding="utf-8",
    )

    profile = ExportProfile.load(path)

    assert list(profile.priority_columns) == ["A", "C"]
    assert profile.predicates() == (FilterPredicate(1, "doe"),)
    assert profile.workers == 3


@pytest.mark.parametrize(
    "payload",
    [
        {"filters": [{"position": -1, "contains": "x"}]},
        {"filters": [{"position": 0, "contains": ""}]},
        {"workers": 0},
    ],
)
def test_profile_validation(payload: dict) -> None:
    with pytest.raises(pydantic.ValidationError):
        ExportProfile.model_validate(payload)


def test_explicit_arguments_override_profile() -> None:
    profile = ExportProfile(priority_columns=["A"], filters=[{"position": 0, "contains": "x"}], workers=2)

    config = merge_profile(
        profile,
        output_path=Path("out.csv"),
        worker_count=8,
        priority_columns=["B"],
        filters=[FilterPredicate(1, "y")],
    )

    assert config.worker_count == 8
    assert config.priority_columns == ("A", "B")
    assert config.filters == (FilterPredicate(0, "x"), FilterPredicate(1, "y"))
    assert merge_profile(None, output_path=Path("o.csv")).worker_count is None
