#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

import numpy as np
from loguru import logger

from gene_lineage_viz.config import ALL_LEVELS, NORMALIZE_ALL, NormalizeMode, VisualizationConfig
from gene_lineage_viz.runs import LineageRun, compute_runs


class Placement(NamedTuple):
    offset: float
    width: float


CoordinateMap = dict[str, Placement]


def usable_width(container_width: float, config: VisualizationConfig) -> float:
    """
    Width left for the assemblies once the left and right margins are taken out.
    """
    return max(0.0, container_width - config.margins.left - config.margins.right)


def _equal_bands(assemblies: Sequence[str], total_width: float) -> CoordinateMap:
    band = total_width / len(assemblies)
    offsets = np.arange(len(assemblies)) * band
    return {assembly: Placement(float(offset), band) for assembly, offset in zip(assemblies, offsets, strict=True)}


def unnormalized_layout(assemblies: Sequence[str], total_width: float) -> CoordinateMap:
    """
    One band per assembly, all of equal width, in list order with no padding.
    """
    return _equal_bands(assemblies, total_width)


def flat_layout(assemblies: Sequence[str], total_width: float) -> CoordinateMap:
    """
    The explicit "__ALL__" normalization. It divides the width exactly as the
    unnormalized layout does and exists so callers can name the mode they asked for.
    """
    return _equal_bands(assemblies, total_width)


def level_layout(assemblies: Sequence[str], values: Sequence[str], total_width: float) -> CoordinateMap:
    """
    Give every run of equal lineage values the same share of the width.

    The width is cut into one equal segment per run, and each segment is divided
    equally among that run's members in their current order. A category with one
    member therefore occupies as much room as a category with a thousand.

    Args:
        assemblies (Sequence[str]): Active assemblies in display order
        values (Sequence[str]): Lineage value of each assembly at the normalizing level
        total_width (float): Width to divide, in pixels

    Returns:
        CoordinateMap: Offset and width for every assembly
    """
    assert len(assemblies) == len(values), (
        f"Expected one lineage value per assembly, but got {len(values)} values for {len(assemblies)} assemblies."
    )
    runs: list[LineageRun[str]] = compute_runs(values)
    segment = total_width / len(runs)

    coords: CoordinateMap = {}
    for run_idx, run in enumerate(runs):
        width = segment / len(run)
        for member_idx, assembly in enumerate(assemblies[run.start : run.end + 1]):
            coords[assembly] = Placement(run_idx * segment + member_idx * width, width)
    return coords


def compute_layout(
    assemblies: Sequence[str],
    total_width: float,
    mode: NormalizeMode = None,
    values: Sequence[str] | None = None,
) -> CoordinateMap:
    """
    Compute a fresh offset/width for every active assembly.

    The map is always rebuilt from scratch, so assemblies that are no longer active
    never linger in it. An empty assembly list gives an empty map, and a
    non-positive width gives every assembly a zero-width placement at offset 0, since
    such widths show up transiently while a container is being resized.

    Args:
        assemblies (Sequence[str]): Active assemblies in display order
        total_width (float): Width to divide, in pixels
        mode (NormalizeMode): None, "__ALL__", or a lineage level
        values (Sequence[str] | None): Lineage values at `mode`, required when `mode`
            is a lineage level

    Returns:
        CoordinateMap: Offset and width for every assembly
    """
    if len(assemblies) == 0:
        return {}

    if total_width <= 0:
        logger.debug(f"Non-positive layout width {total_width}; assigning zero-width placements.")
        return {assembly: Placement(0.0, 0.0) for assembly in assemblies}

    match mode:
        case None:
            return unnormalized_layout(assemblies, total_width)
        case "__ALL__":
            return flat_layout(assemblies, total_width)
        case level if level in ALL_LEVELS:
            assert values is not None, f"Lineage values are required to normalize by {level}."
            return level_layout(assemblies, values, total_width)
        case _:
            msg = f"Unsupported normalization mode '{mode}'. Expected None, '{NORMALIZE_ALL}', or one of {ALL_LEVELS}."
            raise ValueError(msg)


def run_extent(run: LineageRun[str], assemblies: Sequence[str], coords: CoordinateMap) -> Placement:
    """
    The pixel span covered by a run, from its first member's offset to the right edge
    of its last member. Members missing from `coords` read as zero.
    """
    first = coords.get(assemblies[run.start], Placement(0.0, 0.0))
    last = coords.get(assemblies[run.end], Placement(0.0, 0.0))
    return Placement(first.offset, last.offset + last.width - first.offset)
