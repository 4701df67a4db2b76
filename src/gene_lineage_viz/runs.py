#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

import polars as pl

from gene_lineage_viz.config import TaxonomicLevel

T = TypeVar("T", bound=Hashable)


@dataclass(frozen=True)
class LineageRun(Generic[T]):
    """
    A maximal stretch of the active assembly list sharing one value at some level.

    `start` and `end` are inclusive, zero-based positions in the active list.
    """

    value: T
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start + 1


def compute_runs(values: Sequence[T]) -> list[LineageRun[T]]:
    """
    Split an ordered sequence of categorical values into contiguous runs.

    The list is scanned once from left to right and a new run opens every time the
    value changes. Equal values separated by a different value form separate runs;
    nothing is merged or re-sorted.

    Args:
        values (Sequence[T]): Per-assembly values in the current display order

    Returns:
        list[LineageRun[T]]: Runs covering every position exactly once
    """
    if len(values) == 0:
        return []

    runs: list[LineageRun[T]] = []
    start = 0
    current = values[0]
    for i in range(1, len(values)):
        if values[i] != current:
            runs.append(LineageRun(current, start, i - 1))
            current = values[i]
            start = i
    runs.append(LineageRun(current, start, len(values) - 1))
    return runs


def level_values(records: pl.DataFrame, level: TaxonomicLevel) -> list[str]:
    return records.get_column(level).to_list()


def count_by_value(records: pl.DataFrame, level: TaxonomicLevel) -> dict[str, int]:
    """
    Count how many active records carry each value at `level`.

    These are totals over the whole list, not run lengths, so a value that is split
    across several runs is counted once with the sum of its members. Keys come back in
    order of first appearance.
    """
    counts = records.group_by(level, maintain_order=True).len()
    return dict(zip(counts.get_column(level).to_list(), counts.get_column("len").to_list(), strict=True))


def runs_by_level(
    records: pl.DataFrame,
    levels: Sequence[TaxonomicLevel],
) -> dict[TaxonomicLevel, list[LineageRun[str]]]:
    return {level: compute_runs(level_values(records, level)) for level in levels}
