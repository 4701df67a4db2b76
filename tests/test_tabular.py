from __future__ import annotations

from gene_lineage_viz.tabular import GeneTable, display_name, parse_gene_table


def test_scenario_table_headers_and_counts(scenario_table: GeneTable) -> None:
    assert scenario_table.headers == ["Assembly", "gA", "gB"]
    assert scenario_table.gene_names == ["gA", "gB"]
    assert scenario_table.counts == {"X": {"gA": 2, "gB": 0}, "Y": {"gA": 0, "gB": 3}}
    assert scenario_table.rows() == [["X", 2, 0], ["Y", 0, 3]]
    assert scenario_table.total_input == 2


def test_crlf_blank_lines_and_trailing_whitespace() -> None:
    table = parse_gene_table("key\tg1\tg2\r\n\r\nA\t1\t4  \r\n   \r\nB\t0\t2\r\n")
    assert table.gene_names == ["g1", "g2"]
    assert table.counts == {"A": {"g1": 1, "g2": 4}, "B": {"g1": 0, "g2": 2}}
    assert table.total_input == 2


def test_ragged_and_non_numeric_fields_default_to_zero() -> None:
    table = parse_gene_table("k\tg1\tg2\tg3\nA\tfoo\nB\t1\t2\t3\t99\nC\t\tNA\t7\n")
    assert table.counts["A"] == {"g1": 0, "g2": 0, "g3": 0}
    assert table.counts["B"] == {"g1": 1, "g2": 2, "g3": 3}
    assert table.counts["C"] == {"g1": 0, "g2": 0, "g3": 7}


def test_decimal_counts_are_truncated() -> None:
    table = parse_gene_table("k\tg1\tg2\nA\t2.7\t-1.5\n")
    assert table.counts["A"] == {"g1": 2, "g2": -1}


def test_rows_without_a_key_are_skipped() -> None:
    table = parse_gene_table("k\tg1\n\t5\nA\t1\n")
    assert table.keys == ["A"]
    assert table.total_input == 2


def test_repeated_header_columns_keep_the_first() -> None:
    table = parse_gene_table("k\tg1\tg1\tg2\nA\t1\t9\t2\n")
    assert table.gene_names == ["g1", "g2"]
    assert table.counts["A"] == {"g1": 1, "g2": 2}


def test_empty_and_header_only_input() -> None:
    empty = parse_gene_table("")
    assert empty.gene_names == []
    assert empty.counts == {}

    header_only = parse_gene_table("k\tg1\tg2\n")
    assert header_only.gene_names == ["g1", "g2"]
    assert header_only.counts == {}
    assert header_only.total_input == 0


def test_display_name_strips_count_suffix() -> None:
    assert display_name("nifH_count") == "nifH"
    assert display_name("nifH") == "nifH"
    assert display_name("count_genes") == "count_genes"
