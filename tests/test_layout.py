from __future__ import annotations

import pytest

from gene_lineage_viz.config import Margins, VisualizationConfig
from gene_lineage_viz.layout import Placement, compute_layout, run_extent, usable_width
from gene_lineage_viz.runs import compute_runs

ASSEMBLIES = ["a", "b", "c", "d", "e", "f", "g"]


@pytest.mark.parametrize("mode", [None, "__ALL__"])
@pytest.mark.parametrize("total_width", [100.0, 1040.0, 7.5])
def test_equal_band_widths_sum_to_total(mode: str | None, total_width: float) -> None:
    coords = compute_layout(ASSEMBLIES, total_width, mode)  # type: ignore[arg-type]

    assert list(coords) == ASSEMBLIES
    assert sum(p.width for p in coords.values()) == pytest.approx(total_width)
    # bands abut one another in list order
    for left, right in zip(ASSEMBLIES, ASSEMBLIES[1:]):
        assert coords[left].offset + coords[left].width == pytest.approx(coords[right].offset)


def test_unnormalized_and_flat_layouts_agree() -> None:
    assert compute_layout(ASSEMBLIES, 300.0, None) == compute_layout(ASSEMBLIES, 300.0, "__ALL__")


def test_level_layout_scenario() -> None:
    coords = compute_layout(["w", "x", "y", "z"], 100.0, "phylum", ["P1", "P1", "P2", "P1"])

    segment = 100.0 / 3
    assert coords["w"] == (pytest.approx(0.0), pytest.approx(segment / 2))
    assert coords["x"] == (pytest.approx(segment / 2), pytest.approx(segment / 2))
    assert coords["y"] == (pytest.approx(segment), pytest.approx(segment))
    assert coords["z"] == (pytest.approx(2 * segment), pytest.approx(segment))


def test_each_category_gets_an_equal_share() -> None:
    values = ["A", "A", "A", "A", "A", "B", "C", "C"]
    coords = compute_layout(ASSEMBLIES + ["h"], 90.0, "genus", values)

    shares: dict[str, float] = {}
    for assembly, value in zip(ASSEMBLIES + ["h"], values):
        shares[value] = shares.get(value, 0.0) + coords[assembly].width
    assert shares == {"A": pytest.approx(30.0), "B": pytest.approx(30.0), "C": pytest.approx(30.0)}


def test_empty_assembly_list_gives_empty_map() -> None:
    assert compute_layout([], 100.0, None) == {}
    assert compute_layout([], 100.0, "phylum", []) == {}


@pytest.mark.parametrize("total_width", [0.0, -25.0])
def test_non_positive_width_gives_zero_placements(total_width: float) -> None:
    coords = compute_layout(["a", "b"], total_width, "phylum", ["P1", "P2"])
    assert coords == {"a": Placement(0.0, 0.0), "b": Placement(0.0, 0.0)}


def test_unknown_mode_raises() -> None:
    with pytest.raises(ValueError, match="Unsupported normalization mode"):
        compute_layout(["a"], 100.0, "species")  # type: ignore[arg-type]


def test_usable_width_subtracts_margins() -> None:
    config = VisualizationConfig()
    assert usable_width(1200, config) == 1040
    assert usable_width(100, config) == 0
    assert usable_width(500, VisualizationConfig(margins=Margins(left=50, right=50))) == 400


def test_run_extent_spans_first_to_last_member() -> None:
    assemblies = ["w", "x", "y", "z"]
    values = ["P1", "P1", "P2", "P1"]
    coords = compute_layout(assemblies, 120.0, "phylum", values)
    runs = compute_runs(values)

    extents = [run_extent(run, assemblies, coords) for run in runs]
    assert [e.offset for e in extents] == pytest.approx([0.0, 40.0, 80.0])
    assert [e.width for e in extents] == pytest.approx([40.0, 40.0, 40.0])
