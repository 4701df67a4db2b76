#!/usr/bin/env python3

# pyright: basic

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from gene_lineage_viz.chart import render_lineage_chart, write_chart
from gene_lineage_viz.config import ALL_LEVELS, NORMALIZE_ALL, NormalizeMode, load_config
from gene_lineage_viz.session import (
    AddDifference,
    FilterBySize,
    FilterZeroCoverage,
    SearchLineage,
    SessionController,
    SetNormalizeLevel,
    SetSelectedLevels,
    ToggleAllGenes,
    TogglePresence,
)


def setup_logging(level: int = 0) -> None:
    """
    Send loguru output to stderr at a threshold chosen by how many times `-v` was given:
    none shows warnings and load errors, `-v` adds successes, `-vv` adds filter and
    matrix summaries, and `-vvv` or more shows debug output.
    """
    match level:
        case 0:
            level_str = "WARNING"
        case 1:
            level_str = "SUCCESS"
        case 2:
            level_str = "INFO"
        case _:
            level_str = "DEBUG"

    logger.remove()
    logger.add(sys.stderr, colorize=True, level=level_str)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="gene-lineage-viz",
        description="Render gene presence/absence across GTDB lineages as an interactive chart",
    )
    p.add_argument("reference", type=Path, help="Reference lineage dataset (JSON array of records)")
    p.add_argument("output", type=Path, help="Output chart path (.html, .svg, .png or .pdf)")
    p.add_argument("--genes", "-g", type=Path, default=None, help="Tab-separated gene count table")
    p.add_argument(
        "--levels",
        "-l",
        nargs="+",
        choices=ALL_LEVELS,
        default=["phylum"],
        help="Lineage levels to draw, top to bottom",
    )
    p.add_argument(
        "--normalize",
        "-n",
        choices=[*ALL_LEVELS, "all", "none"],
        default="none",
        help="Give every category at this level equal width ('all' gives every assembly equal width)",
    )
    p.add_argument("--search", "-s", default=None, help="Keep only the lineage with exactly this name")
    p.add_argument(
        "--min-size",
        nargs=2,
        metavar=("LEVEL", "N"),
        default=None,
        help="Drop categories at LEVEL with fewer than N assemblies",
    )
    p.add_argument("--drop-empty", action="store_true", help="Drop assemblies without any counted gene")
    p.add_argument(
        "--difference",
        nargs=2,
        metavar=("GENE1", "GENE2"),
        default=None,
        help="Add rows comparing two genes",
    )
    p.add_argument("--use-counts", action="store_true", help="Compare raw counts rather than presence")
    p.add_argument("--show-absence", action="store_true", help="Mark assemblies lacking each gene instead")
    p.add_argument("--width", "-w", type=float, default=None, help="Container width in pixels")
    p.add_argument("--config", "-c", type=Path, default=None, help="YAML file overriding the layout constants")
    p.add_argument("--verbose", "-v", action="count", default=0, help="Increase logging verbosity")
    return p.parse_args(argv)


def _normalize_mode(choice: str) -> NormalizeMode:
    match choice:
        case "none":
            return None
        case "all":
            return NORMALIZE_ALL
        case level:
            return level  # type: ignore[return-value]


def prepare_session(args: argparse.Namespace) -> SessionController | None:
    """
    Load the inputs named on the command line and apply the requested view actions,
    returning None if either input could not be read.
    """
    config = load_config(args.config)
    notices: list[str] = []
    controller = SessionController(config=config, notify=notices.append)

    if not controller.load_reference(args.reference):
        logger.error(notices[-1])
        return None
    # --use-counts only changes how --difference compares genes; the matrix keeps presence bits
    if args.genes is not None and not controller.load_gene_table(args.genes):
        logger.error(notices[-1])
        return None

    controller.on_width_change(args.width if args.width is not None else config.fixed_width)
    controller.dispatch(SetSelectedLevels(args.levels))
    controller.dispatch(SetNormalizeLevel(_normalize_mode(args.normalize)))

    if args.search is not None:
        controller.dispatch(SearchLineage(args.search))
    if args.min_size is not None:
        level, threshold = args.min_size
        assert level in ALL_LEVELS, f"'{level}' is not a lineage level; expected one of {ALL_LEVELS}."
        controller.dispatch(FilterBySize(level, int(threshold)))
    if args.drop_empty:
        controller.dispatch(FilterZeroCoverage())

    controller.dispatch(ToggleAllGenes())
    if args.difference is not None:
        gene1, gene2 = args.difference
        controller.dispatch(AddDifference(gene1, gene2, use_counts=args.use_counts))
    if args.show_absence:
        controller.dispatch(TogglePresence())

    for notice in notices:
        logger.warning(notice)
    return controller


def main(argv: list[str] | None = None) -> int:
    """
    Program entrypoint if run as an executable script
    """
    args = parse_args(argv)
    setup_logging(args.verbose)

    controller = prepare_session(args)
    if controller is None:
        return 1

    chart = render_lineage_chart(controller.state)
    write_chart(chart, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
