#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false, reportMissingTypeStubs=false

from __future__ import annotations

from pathlib import Path
from typing import Literal

import altair as alt
import polars as pl
from loguru import logger

from gene_lineage_viz.colors import LineagePalette
from gene_lineage_viz.config import OUTPUT_FORMAT, OutputFormat
from gene_lineage_viz.layout import Placement, run_extent
from gene_lineage_viz.runs import count_by_value
from gene_lineage_viz.session import ViewState
from gene_lineage_viz.tabular import display_name

# String literal constant to represent the supported altair themes.
ALTAIR_THEME: Literal["default", "dark", "excel", "ggplot2", "quartz", "vox"] = "default"

# All gene rugs share one dark fill
RUG_COLOR = "#1f2937"

BAND_SCHEMA = {
    "level": pl.String,
    "category": pl.String,
    "color_key": pl.String,
    "start": pl.Float64,
    "stop": pl.Float64,
    "members": pl.Int64,
}

RUG_SCHEMA = {
    "gene": pl.String,
    "assembly": pl.String,
    "start": pl.Float64,
    "stop": pl.Float64,
    "count": pl.Int64,
}


def band_table(state: ViewState) -> pl.DataFrame:
    """
    Flatten the lineage runs of every selected level into one row per drawn band.

    Each band spans from its first member's offset to the right edge of its last
    member, and carries the total number of active records in its category, which is
    what the tooltip reports.
    """
    rows = []
    for level in state.selected_levels:
        counts = count_by_value(state.records, level)
        for run in state.runs.get(level, []):
            extent = run_extent(run, state.assemblies, state.coords)
            rows.append(
                {
                    "level": level,
                    "category": run.value,
                    "color_key": f"{level}_{run.value}",
                    "start": extent.offset,
                    "stop": extent.offset + extent.width,
                    "members": counts.get(run.value, 0),
                },
            )
    return pl.DataFrame(rows, schema=BAND_SCHEMA)


def rug_table(state: ViewState) -> pl.DataFrame:
    """
    One row per (active gene, active assembly) cell that is set in the matrix, with
    the raw count from the companion record for the tooltip.
    """
    if state.matrix is None or len(state.active_genes) == 0:
        return pl.DataFrame(schema=RUG_SCHEMA)

    rows = []
    for gene in state.active_genes:
        cells = state.matrix.row(gene, state.assemblies)
        for assembly, cell in zip(state.assemblies, cells, strict=True):
            if not cell:
                continue
            placement = state.coords.get(assembly, Placement(0.0, 0.0))
            rows.append(
                {
                    "gene": display_name(gene),
                    "assembly": assembly,
                    "start": placement.offset,
                    "stop": placement.offset + placement.width,
                    "count": state.matrix.count(assembly, gene),
                },
            )
    return pl.DataFrame(rows, schema=RUG_SCHEMA)


def render_lineage_chart(state: ViewState, palette: LineagePalette | None = None) -> alt.VConcatChart:
    """
    Render the lineage bands and gene rugs for a ViewState as an altair chart.

    The top panel draws one row per selected level, with a colored block for every run
    in the current ordering; hovering a block outlines it and shows its category and
    member count. The bottom panel draws one row per active gene, with a dark mark at
    every assembly where the gene is present (or absent, once the presence view has
    been toggled), and hovering a mark shows the raw count.

    Args:
        state (ViewState): The state to draw
        palette (LineagePalette | None): Palette to use, so colors can stay stable
            across several renders in one session

    Returns:
        alt.VConcatChart: The two stacked panels
    """
    palette = palette or LineagePalette(golden=state.config.golden)
    alt.theme.enable(ALTAIR_THEME)

    width = max(state.total_width, 1.0)
    x_scale = alt.Scale(domain=[0, width], nice=False, zero=True)

    bands = band_table(state)
    color_keys = bands.select("level", "category", "color_key").unique(maintain_order=True)
    color_range = [palette.color(level, category) for level, category, _ in color_keys.iter_rows()]

    hover = alt.selection_point(fields=["level", "category"], on="pointerover", empty=False, clear="pointerout")
    lineage_click = alt.selection_point(fields=["level", "category"], on="click", name="LineageClick")

    band_chart = (
        alt.Chart(bands)
        .mark_rect(strokeWidth=0.5)
        .encode(
            x=alt.X("start:Q", scale=x_scale, axis=None),
            x2="stop:Q",
            y=alt.Y("level:N", sort=list(state.selected_levels), title=None),
            color=alt.Color(
                "color_key:N",
                scale=alt.Scale(domain=color_keys.get_column("color_key").to_list(), range=color_range),
                legend=None,
            ),
            stroke=alt.when(hover).then(alt.value("#000000")).otherwise(alt.value("#ffffff")),
            strokeWidth=alt.when(hover).then(alt.value(2)).otherwise(alt.value(0.5)),
            tooltip=[
                alt.Tooltip("category:N", title=None),
                alt.Tooltip("members:Q", title="Count", format=","),
            ],
        )
        .add_params(hover, lineage_click)
        .properties(width=width, height=len(state.selected_levels) * state.config.level_height)
    )

    rugs = rug_table(state)
    gene_labels = [display_name(gene) for gene in state.active_genes]
    rug_chart = (
        alt.Chart(rugs)
        .mark_rect(color=RUG_COLOR)
        .encode(
            x=alt.X("start:Q", scale=x_scale, axis=None),
            x2="stop:Q",
            y=alt.Y("gene:N", sort=gene_labels, title=None),
            tooltip=[
                alt.Tooltip("gene:N", title="Gene"),
                alt.Tooltip("assembly:N", title="Assembly"),
                alt.Tooltip("count:Q", title="Count", format=","),
            ],
        )
        .properties(
            width=width,
            height=max(len(gene_labels), 1) * (state.config.rug_height + state.config.rug_pad),
        )
    )

    return (
        alt.vconcat(band_chart, rug_chart, spacing=state.config.base_gap)
        .configure_view(stroke=None)
        .configure_axis(labelFontSize=13, labelLimit=state.config.margins.left)
        .properties(padding=state.config.margins.top // 4)
    )


def write_chart(chart: alt.VConcatChart, output_path: str | Path) -> Path:
    """
    Write a rendered chart, picking the format from the file suffix.

    Suffixes other than .html, .svg, .png, or .pdf fall back to the default output
    format, with a warning.

    Args:
        chart (alt.VConcatChart): Chart from `render_lineage_chart`
        output_path (str | Path): Destination file

    Returns:
        Path: The path actually written
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lstrip(".").lower()
    if suffix not in ("html", "svg", "png", "pdf"):
        logger.warning(f"Unsupported output format '{suffix}' requested. Defaulting to {OUTPUT_FORMAT.upper()}.")
        output_path = output_path.with_suffix(f".{OUTPUT_FORMAT}")
    fmt: OutputFormat = output_path.suffix.lstrip(".").lower()  # type: ignore[assignment]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    chart.save(str(output_path), format=fmt)
    logger.success(f"Wrote the lineage chart to '{output_path}'.")
    return output_path
