#!/usr/bin/env python3

# pyright: basic

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

import yaml
from loguru import logger

# The taxonomic ranks carried by every reference record, ordered from the broadest to
# the narrowest. Filters, runs, and the search-by-term lookup all walk this order.
TaxonomicLevel = Literal["phylum", "class", "order", "family", "genus"]
ALL_LEVELS: tuple[TaxonomicLevel, ...] = ("phylum", "class", "order", "family", "genus")

# Sentinel normalization mode giving every assembly the same width
NORMALIZE_ALL: Literal["__ALL__"] = "__ALL__"

# `None` means no normalization, `"__ALL__"` means flat equal widths, and a level name
# means every category at that level gets an equal share of the plot.
NormalizeMode = TaxonomicLevel | Literal["__ALL__"] | None

# String literal constant to represent the possible output formats. Type checkers will
# enforce that the user select only from these options.
OutputFormat = Literal["html", "svg", "png", "pdf"]
OUTPUT_FORMAT: OutputFormat = "html"

# The level shown when the user has deselected everything
DEFAULT_LEVELS: tuple[TaxonomicLevel, ...] = ("phylum",)

# Lineage datasets shipped alongside the viewer. The names are resolved relative to
# the data directory so the viewer can be hosted under any base path.
DATASETS: tuple[str, ...] = (
    "GTDB214_lineage_ordered_custom_order.json",
    "GTDB214_lineage_ordered.json",
)


@dataclass
class Margins:
    top: int = 40
    right: int = 20
    bottom: int = 40
    left: int = 140


@dataclass
class VisualizationConfig:
    """
    Geometry constants shared by the layout engine and the chart renderer.

    The plot area starts `margins.left` pixels into the container, so the width that
    gets divided among assemblies is the container width minus the left and right
    margins.
    """

    fixed_width: int = 1500
    margins: Margins = field(default_factory=Margins)
    level_height: int = 28
    inner_pad: int = 2
    rug_height: int = 14
    rug_pad: int = 4
    base_gap: int = 20
    golden: float = 0.618033988749895
    data_dir: Path = Path("data")
    datasets: tuple[str, ...] = DATASETS
    default_dataset: str = DATASETS[0]

    def dataset_path(self, name: str | None = None) -> Path:
        return self.data_dir / (name or self.default_dataset)


def load_config(config_path: str | Path | None = None) -> VisualizationConfig:
    """
    Build a VisualizationConfig, optionally overriding defaults from a YAML file.

    The YAML document must be a mapping whose keys match the VisualizationConfig fields.
    `margins` may itself be a mapping of any subset of top/right/bottom/left. Unknown
    keys are logged and ignored.

    Args:
        config_path (str | Path | None): Optional path to a YAML file

    Returns:
        VisualizationConfig: The merged configuration
    """
    config = VisualizationConfig()
    if config_path is None:
        return config

    with open(config_path) as f:
        overrides: dict[str, Any] = yaml.safe_load(f) or {}

    assert isinstance(overrides, dict), (
        f"The configuration file '{config_path}' must contain a mapping, but a {type(overrides).__name__} was found."
    )

    known = {f.name for f in fields(VisualizationConfig)}
    for key, value in overrides.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key '{key}' in {config_path}")
            continue
        match key:
            case "margins":
                config.margins = Margins(**{**vars(config.margins), **value})
            case "data_dir":
                config.data_dir = Path(value)
            case "datasets":
                config.datasets = tuple(value)
            case _:
                setattr(config, key, value)

    if config.default_dataset not in config.datasets:
        logger.warning(
            f"The default dataset '{config.default_dataset}' is not among the configured datasets: {config.datasets}",
        )

    logger.debug(f"Loaded visualization configuration from {config_path}: {config}")
    return config
