#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false

from __future__ import annotations

from dataclasses import dataclass, field

import polars as pl
from loguru import logger

# Gene count tables name their value columns "<gene>_count"; the suffix is dropped
# whenever a gene name is shown to the user or used to build a derived name.
COUNT_SUFFIX = "_count"


def display_name(gene: str) -> str:
    return gene.removesuffix(COUNT_SUFFIX)


@dataclass
class GeneTable:
    """
    A parsed gene count table.

    `df` holds one row per data line with a non-empty key: the key column as a string
    followed by one Int64 column per gene. `counts` is the same information as a
    key -> {gene: count} mapping, which is what the presence matrix is built from.
    """

    key_column: str
    gene_names: list[str]
    df: pl.DataFrame
    total_input: int = 0
    counts: dict[str, dict[str, int]] = field(init=False)

    def __post_init__(self) -> None:
        counts: dict[str, dict[str, int]] = {}
        for row in self.df.iter_rows(named=True):
            key = row[self.key_column]
            if key in counts:
                logger.debug(f"Duplicate key '{key}' in gene table; the later row replaces the earlier one.")
            counts[key] = {gene: int(row[gene]) for gene in self.gene_names}
        self.counts = counts

    @property
    def headers(self) -> list[str]:
        return [self.key_column, *self.gene_names]

    @property
    def keys(self) -> list[str]:
        return list(self.counts)

    def rows(self) -> list[list[str | int]]:
        return [list(row) for row in self.df.iter_rows()]


def _value_columns(header: list[str], key_column: str) -> list[tuple[int, str]]:
    """
    Pair every usable value column name with its position in the header, keeping only
    the first occurrence of a repeated name.
    """
    seen = {key_column}
    columns: list[tuple[int, str]] = []
    for position, name in enumerate(header[1:], start=1):
        name = name.strip()  # noqa: PLW2901
        if not name:
            logger.warning(f"Skipping unnamed column at position {position + 1} of the gene table header.")
            continue
        if name in seen:
            logger.warning(f"Skipping repeated column '{name}' at position {position + 1} of the gene table header.")
            continue
        seen.add(name)
        columns.append((position, name))
    return columns


def parse_gene_table(text: str) -> GeneTable:
    """
    Parse tab-separated gene count text into a GeneTable.

    The first non-empty line is the header and its first column names the key column.
    Every other header column is a gene. Line endings may be LF or CRLF, trailing
    whitespace is trimmed, and blank lines are dropped. Rows with an empty key are
    skipped. Count fields are parsed as integers (decimals are truncated) and any
    field that is missing or cannot be parsed becomes 0, so ragged or partially
    corrupt rows never raise.

    Args:
        text (str): The full text of the gene count table

    Returns:
        GeneTable: The parsed table, empty if the text held no header
    """
    lines = [line.rstrip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if len(lines) == 0:
        logger.warning("The gene table was empty.")
        return GeneTable(key_column="assembly", gene_names=[], df=pl.DataFrame(schema={"assembly": pl.String}))

    header = lines[0].split("\t")
    key_column = header[0].strip() or "assembly"
    columns = _value_columns(header, key_column)
    gene_names = [name for _, name in columns]

    raw_rows: list[list[str | None]] = []
    skipped = 0
    for line in lines[1:]:
        parts = line.split("\t")
        key = parts[0].strip()
        if not key:
            skipped += 1
            continue
        raw_rows.append([key, *[parts[pos] if pos < len(parts) else None for pos, _ in columns]])

    if skipped > 0:
        logger.debug(f"Skipped {skipped} gene table rows without a key.")

    # build everything as strings first so that a single bad field only nulls out
    # that one cell, and then coerce the gene columns to integers in one pass
    schema = {name: pl.String for name in [key_column, *gene_names]}
    df = pl.DataFrame(raw_rows, schema=schema, orient="row")
    if len(gene_names) > 0:
        df = df.with_columns(
            pl.col(gene_names)
            .str.strip_chars()
            .cast(pl.Float64, strict=False)
            .fill_nan(None)
            .cast(pl.Int64, strict=False)
            .fill_null(0),
        )

    logger.info(f"Parsed a gene table with {len(gene_names)} genes and {df.height} keyed rows.")
    return GeneTable(key_column=key_column, gene_names=gene_names, df=df, total_input=len(lines) - 1)
