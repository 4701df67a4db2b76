from __future__ import annotations

import polars as pl
import pytest

from gene_lineage_viz.datasets import records_from_rows
from gene_lineage_viz.registry import IndexRegistry
from gene_lineage_viz.tabular import GeneTable, parse_gene_table

SCENARIO_A_TSV = "Assembly\tgA\tgB\nX\t2\t0\nY\t0\t3\n"

COMPARISON_TSV = "Assembly\tg1_count\tg2_count\nX\t2\t0\nY\t0\t3\nZ\t3\t1\n"


def _record(assembly: str, phylum: str, klass: str, genus: str) -> dict[str, str]:
    return {
        "assembly": assembly,
        "phylum": phylum,
        "class": klass,
        "order": f"o_{klass}",
        "family": f"f_{klass}",
        "genus": genus,
    }


@pytest.fixture
def records() -> pl.DataFrame:
    # phylum ordering is P1, P1, P2, P1 so that P1 forms two separate runs
    return records_from_rows(
        [
            _record("X", "P1", "C1", "G1"),
            _record("Y", "P1", "C2", "G2"),
            _record("Z", "P2", "C3", "G3"),
            _record("W", "P1", "C1", "G4"),
        ],
    )


@pytest.fixture
def scenario_table() -> GeneTable:
    return parse_gene_table(SCENARIO_A_TSV)


@pytest.fixture
def comparison_table() -> GeneTable:
    return parse_gene_table(COMPARISON_TSV)


@pytest.fixture
def xyzw() -> IndexRegistry:
    return IndexRegistry.from_names(["X", "Y", "Z", "W"])
