from __future__ import annotations

import json
from pathlib import Path

import pytest

from gene_lineage_viz.datasets import (
    RECORD_COLUMNS,
    DatasetLoadError,
    load_gene_table,
    load_reference_records,
    records_from_rows,
)


def _write_json(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload))
    return path


def test_load_reference_records(tmp_path: Path) -> None:
    path = _write_json(
        tmp_path / "lineages.json",
        [
            {"assembly": "A", "phylum": "P1", "class": "C1", "order": "O1", "family": "F1", "genus": "G1"},
            {"assembly": "B", "phylum": "P2", "class": "C2", "order": "O2", "family": "F2", "genus": "G2"},
        ],
    )
    records = load_reference_records(path)
    assert records.columns == list(RECORD_COLUMNS)
    assert records.get_column("assembly").to_list() == ["A", "B"]
    assert records.get_column("genus").to_list() == ["G1", "G2"]


def test_missing_levels_and_nulls_become_blank(tmp_path: Path) -> None:
    path = _write_json(tmp_path / "partial.json", [{"assembly": "A", "phylum": None, "class": "C1"}])
    records = load_reference_records(path)
    assert records.row(0, named=True) == {
        "assembly": "A",
        "phylum": "",
        "class": "C1",
        "order": "",
        "family": "",
        "genus": "",
    }


def test_repeated_assemblies_keep_the_first_record() -> None:
    records = records_from_rows([{"assembly": "A", "phylum": "P1"}, {"assembly": "A", "phylum": "P2"}])
    assert records.height == 1
    assert records.get_column("phylum").to_list() == ["P1"]


def test_empty_reference_has_the_record_columns() -> None:
    assert records_from_rows([]).columns == list(RECORD_COLUMNS)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(DatasetLoadError) as excinfo:
        load_reference_records(tmp_path / "nowhere.json")
    assert excinfo.value.path == tmp_path / "nowhere.json"


def test_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("[{not json")
    with pytest.raises(DatasetLoadError):
        load_reference_records(path)


def test_records_without_assembly_raise(tmp_path: Path) -> None:
    path = _write_json(tmp_path / "anonymous.json", [{"phylum": "P1"}])
    with pytest.raises(DatasetLoadError, match="assembly"):
        load_reference_records(path)


def test_load_gene_table(tmp_path: Path) -> None:
    path = tmp_path / "genes.tsv"
    path.write_text("Assembly\tgA\tgB\nX\t2\t0\nY\t0\t3\n")
    table = load_gene_table(path)
    assert table.counts == {"X": {"gA": 2, "gB": 0}, "Y": {"gA": 0, "gB": 3}}

    with pytest.raises(DatasetLoadError):
        load_gene_table(tmp_path / "missing.tsv")
