#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import polars as pl
from loguru import logger

from gene_lineage_viz.config import ALL_LEVELS
from gene_lineage_viz.filters import ASSEMBLY_COLUMN
from gene_lineage_viz.tabular import GeneTable, parse_gene_table

RECORD_COLUMNS: tuple[str, ...] = (ASSEMBLY_COLUMN, *ALL_LEVELS)
RECORD_SCHEMA: dict[str, type[pl.DataType]] = {column: pl.String for column in RECORD_COLUMNS}


class DatasetLoadError(RuntimeError):
    """
    Raised when a dataset cannot be read or does not have the expected shape.
    """

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not load '{path}': {reason}")


def normalize_records(raw_df: pl.DataFrame) -> pl.DataFrame:
    """
    Coerce a frame of reference records to the expected string columns.

    Lineage columns that are missing altogether, and null values, become empty
    strings. Extra columns are dropped and repeated assembly keys keep their first
    record.

    Args:
        raw_df (pl.DataFrame): Records as deserialized from the reference JSON

    Returns:
        pl.DataFrame: Records with exactly the assembly and five lineage columns
    """
    if raw_df.width == 0:
        return pl.DataFrame(schema=RECORD_SCHEMA)

    assert ASSEMBLY_COLUMN in raw_df.columns, (
        f"Reference records must carry an '{ASSEMBLY_COLUMN}' column, but only {raw_df.columns} were found."
    )

    missing = [level for level in ALL_LEVELS if level not in raw_df.columns]
    if len(missing) > 0:
        logger.warning(f"Reference records are missing lineage levels {missing}; they will be left blank.")

    records = raw_df.with_columns(
        [pl.lit("").alias(level) for level in missing],
    ).select(
        [pl.col(column).cast(pl.String).fill_null("") for column in RECORD_COLUMNS],
    )

    deduplicated = records.unique(subset=ASSEMBLY_COLUMN, keep="first", maintain_order=True)
    if deduplicated.height != records.height:
        logger.warning(
            f"Dropped {records.height - deduplicated.height} reference records with repeated assembly identifiers.",
        )
    return deduplicated


def records_from_rows(rows: Sequence[Mapping[str, Any]]) -> pl.DataFrame:
    if len(rows) == 0:
        return pl.DataFrame(schema=RECORD_SCHEMA)
    return normalize_records(pl.DataFrame([dict(row) for row in rows]))


def load_reference_records(json_path: str | Path) -> pl.DataFrame:
    """
    Read a reference lineage dataset, a JSON array of records, into a polars frame.

    Args:
        json_path (str | Path): Path to the JSON document

    Raises:
        DatasetLoadError: If the file cannot be read, is not valid JSON, or lacks an
            assembly column

    Returns:
        pl.DataFrame: Normalized reference records in file order
    """
    try:
        raw_df = pl.read_json(json_path)
    except (OSError, pl.exceptions.PolarsError) as exc:
        logger.error(f"Failed to read the reference dataset at '{json_path}': {exc}")
        raise DatasetLoadError(json_path, str(exc)) from exc

    if raw_df.width > 0 and ASSEMBLY_COLUMN not in raw_df.columns:
        logger.error(f"The reference dataset at '{json_path}' has no '{ASSEMBLY_COLUMN}' field.")
        raise DatasetLoadError(json_path, f"no '{ASSEMBLY_COLUMN}' field in records")

    records = normalize_records(raw_df)
    logger.success(f"Loaded {records.height} reference records from '{json_path}'.")
    return records


def load_gene_table(tsv_path: str | Path) -> GeneTable:
    """
    Read a tab-separated gene count table from disk and parse it.

    Raises:
        DatasetLoadError: If the file cannot be read as UTF-8 text
    """
    try:
        text = Path(tsv_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error(f"Failed to read the gene table at '{tsv_path}': {exc}")
        raise DatasetLoadError(tsv_path, str(exc)) from exc

    table = parse_gene_table(text)
    logger.success(f"Loaded {len(table.gene_names)} genes for {len(table.counts)} assemblies from '{tsv_path}'.")
    return table
