from __future__ import annotations

import polars as pl
import pytest

from gene_lineage_viz.runs import LineageRun, compute_runs, count_by_value, runs_by_level


def test_non_adjacent_values_are_not_merged() -> None:
    assert compute_runs(["P1", "P1", "P2", "P1"]) == [
        LineageRun("P1", 0, 1),
        LineageRun("P2", 2, 2),
        LineageRun("P1", 3, 3),
    ]


def test_empty_input_has_no_runs() -> None:
    assert compute_runs([]) == []


@pytest.mark.parametrize(
    "values",
    [
        ["a"],
        ["a", "a", "a"],
        ["a", "b", "a", "b"],
        ["a", "a", "b", "c", "c", "c", "a"],
        [1, 1, 2, 2, 2, 1],
    ],
)
def test_runs_cover_every_position_and_are_maximal(values: list) -> None:
    runs = compute_runs(values)

    covered = [i for run in runs for i in range(run.start, run.end + 1)]
    assert covered == list(range(len(values)))
    assert sum(len(run) for run in runs) == len(values)

    for run in runs:
        assert all(values[i] == run.value for i in range(run.start, run.end + 1))
    for left, right in zip(runs, runs[1:]):
        assert left.value != right.value


def test_count_by_value_sums_split_categories(records: pl.DataFrame) -> None:
    counts = count_by_value(records, "phylum")
    assert counts == {"P1": 3, "P2": 1}
    assert list(counts) == ["P1", "P2"]


def test_runs_by_level(records: pl.DataFrame) -> None:
    runs = runs_by_level(records, ["phylum", "class"])
    assert [run.value for run in runs["phylum"]] == ["P1", "P2", "P1"]
    assert [run.value for run in runs["class"]] == ["C1", "C2", "C3", "C1"]
