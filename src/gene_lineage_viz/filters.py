#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import NamedTuple

import polars as pl
from loguru import logger

from gene_lineage_viz.config import ALL_LEVELS, TaxonomicLevel
from gene_lineage_viz.runs import count_by_value

ASSEMBLY_COLUMN = "assembly"


class Selection(NamedTuple):
    """
    The active records after a filter, along with their assembly keys in order.
    """

    records: pl.DataFrame
    assemblies: list[str]


def select(records: pl.DataFrame) -> Selection:
    return Selection(records, records.get_column(ASSEMBLY_COLUMN).to_list())


def _keep_values(column: str, values: Iterable[str]) -> pl.Expr:
    return pl.col(column).is_in(pl.Series(list(values), dtype=pl.String))


def filter_by_lineage_search(records: pl.DataFrame, level: TaxonomicLevel, term: str) -> Selection:
    """
    Keep records whose value at `level` contains `term`, ignoring case. An empty term
    keeps everything.
    """
    if not term:
        return select(records)
    return select(
        records.filter(pl.col(level).str.to_lowercase().str.contains(term.lower(), literal=True)),
    )


def filter_by_lineage_size(records: pl.DataFrame, level: TaxonomicLevel, threshold: int) -> Selection:
    """
    Keep records whose category at `level` has at least `threshold` members in the
    current list. Membership is counted over the whole list, not per run. A threshold
    of 0 or less keeps everything.
    """
    if threshold <= 0:
        return select(records)
    counts = count_by_value(records, level)
    large_enough = [value for value, count in counts.items() if count >= threshold]
    logger.debug(f"{len(large_enough)} of {len(counts)} {level} categories have at least {threshold} members.")
    return select(records.filter(_keep_values(level, large_enough)))


def filter_zero_coverage(records: pl.DataFrame, companion: Mapping[str, Mapping[str, int]]) -> Selection:
    """
    Keep records that have at least one gene with a positive count. Records that never
    appeared in the gene table are dropped as well.
    """
    covered = [key for key, counts in companion.items() if any(count > 0 for count in counts.values())]
    return select(records.filter(_keep_values(ASSEMBLY_COLUMN, covered)))


def filter_by_lineage(records: pl.DataFrame, level: TaxonomicLevel, category: str) -> Selection:
    """
    Keep records whose value at `level` is exactly `category`. This backs both
    click-to-drill-down on a lineage band and search-by-term.
    """
    return select(records.filter(pl.col(level) == category))


def find_lineage_level(origin: pl.DataFrame, term: str) -> TaxonomicLevel | None:
    """
    Find the broadest level at which some record has exactly the value `term`.

    The unfiltered records are searched so a term can be found even if the current
    filters have hidden every record carrying it. Blank terms never match.
    """
    term = term.strip()
    if not term:
        return None
    for level in ALL_LEVELS:
        if origin.get_column(level).eq(term).any():
            return level
    return None


def reset(origin: pl.DataFrame) -> Selection:
    return select(origin.clone())
