#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Literal

import numpy as np
from loguru import logger
from typing_extensions import Self

from gene_lineage_viz.registry import IndexRegistry
from gene_lineage_viz.tabular import GeneTable, display_name

# How two genes are compared when synthesizing difference rows: "counts" compares the
# raw counts, "presence" compares presence alone.
DerivedMode = Literal["counts", "presence"]

DERIVED_SEPARATORS: dict[str, str] = {"counts": ">", "presence": "-"}


def derived_gene_name(first: str, second: str, mode: DerivedMode) -> str:
    """
    Name the difference row meaning "`first` exceeds `second`" under `mode`.
    """
    return f"{display_name(first)}{DERIVED_SEPARATORS[mode]}{display_name(second)}"


@dataclass(frozen=True)
class PresenceMatrix:
    """
    A dense gene x assembly matrix plus the raw counts it was derived from.

    `cells[g, a]` is indexed by the ordinals held in the `genes` and `assemblies`
    registries. In presence mode a cell is 1 when the assembly carries the gene and 0
    otherwise; in counts mode the cell holds the raw count instead. `companion` maps
    each assembly that appeared in the gene table to its per-gene counts, and is kept
    consistent with the cells: a presence bit is set exactly when the companion count
    is positive, or exactly when it is not once the matrix has been toggled
    (`inverted`).

    Instances are never mutated. Every operation returns a new matrix, copying the
    pieces that change.
    """

    genes: IndexRegistry
    assemblies: IndexRegistry
    cells: np.ndarray
    companion: dict[str, dict[str, int]] = field(default_factory=dict)
    use_counts: bool = False
    inverted: bool = False
    derived_genes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        assert self.cells.shape == (len(self.genes), len(self.assemblies)), (
            f"Matrix dimensions {self.cells.shape} do not match {len(self.genes)} genes x {len(self.assemblies)} assemblies."
        )

    @classmethod
    def empty(cls, assemblies: IndexRegistry) -> Self:
        return cls(
            genes=IndexRegistry(),
            assemblies=assemblies,
            cells=np.zeros((0, len(assemblies)), dtype=np.uint8),
        )

    @classmethod
    def build(cls, table: GeneTable, assemblies: IndexRegistry, use_counts: bool = False) -> Self:
        """
        Build a matrix for the genes in `table` against an existing assembly registry.

        Rows of the table whose key is not a registered assembly are skipped; the
        assembly registry is never extended here.

        Args:
            table (GeneTable): Parsed gene count table
            assemblies (IndexRegistry): Ordinals of the reference assemblies
            use_counts (bool): Store raw counts in the cells instead of presence bits

        Returns:
            PresenceMatrix: The newly allocated matrix
        """
        genes = IndexRegistry.from_names(table.gene_names)
        dtype = np.int64 if use_counts else np.uint8
        cells = np.zeros((len(genes), len(assemblies)), dtype=dtype)
        companion: dict[str, dict[str, int]] = {}

        unmatched = 0
        for key, gene_counts in table.counts.items():
            asm_idx = assemblies.lookup(key)
            if asm_idx is None:
                unmatched += 1
                continue
            companion[key] = dict(gene_counts)
            for gene, count in gene_counts.items():
                if count <= 0:
                    continue
                gene_idx = genes.lookup(gene)
                assert gene_idx is not None
                cells[gene_idx, asm_idx] = count if use_counts else 1

        if unmatched > 0:
            logger.info(f"{unmatched} gene table rows did not match a reference assembly and were skipped.")
        logger.debug(f"Built a {cells.shape[0]} x {cells.shape[1]} presence matrix for {len(companion)} assemblies.")

        return cls(genes=genes, assemblies=assemblies, cells=cells, companion=companion, use_counts=use_counts)

    @property
    def gene_names(self) -> list[str]:
        return self.genes.names()

    @property
    def shape(self) -> tuple[int, int]:
        return self.cells.shape

    def count(self, assembly: str, gene: str) -> int:
        """
        Return the raw count of `gene` in `assembly`, or 0 when either is unknown.
        """
        return self.companion.get(assembly, {}).get(gene, 0)

    def cell(self, gene: str, assembly: str) -> int:
        gene_idx = self.genes.lookup(gene)
        asm_idx = self.assemblies.lookup(assembly)
        if gene_idx is None or asm_idx is None:
            return 0
        return int(self.cells[gene_idx, asm_idx])

    def row(self, gene: str, assemblies: Sequence[str]) -> np.ndarray:
        """
        Return the cells of `gene` for `assemblies`, in the given order.

        Unknown genes or assemblies read as 0.
        """
        out = np.zeros(len(assemblies), dtype=self.cells.dtype)
        gene_idx = self.genes.lookup(gene)
        if gene_idx is None:
            return out
        for i, assembly in enumerate(assemblies):
            asm_idx = self.assemblies.lookup(assembly)
            if asm_idx is not None:
                out[i] = self.cells[gene_idx, asm_idx]
        return out

    def covered_assemblies(self) -> set[str]:
        return {key for key, record in self.companion.items() if any(count > 0 for count in record.values())}

    def is_consistent(self) -> bool:
        """
        Check that every set cell corresponds to a positive companion count and vice
        versa, taking the `inverted` flag into account.
        """
        expected = np.zeros(self.cells.shape, dtype=bool)
        for key, record in self.companion.items():
            asm_idx = self.assemblies.lookup(key)
            if asm_idx is None:
                return False
            for gene, count in record.items():
                gene_idx = self.genes.lookup(gene)
                if gene_idx is None:
                    return False
                expected[gene_idx, asm_idx] = count > 0
        return bool(np.array_equal(self.cells > 0, expected != self.inverted))

    def toggle_presence(self) -> PresenceMatrix:
        """
        Flip every cell between present and absent.

        The companion counts are left untouched and the `inverted` flag records that
        the view has been flipped. Toggling twice gives back the original cells; in
        counts mode the raw counts are restored from the companion, since the flipped
        view only holds presence bits.
        """
        if self.inverted and self.use_counts:
            return replace(self, cells=self._count_cells(), inverted=False)
        flipped = (self.cells == 0).astype(self.cells.dtype)
        return replace(self, cells=flipped, inverted=not self.inverted)

    def _count_cells(self) -> np.ndarray:
        cells = np.zeros(self.cells.shape, dtype=self.cells.dtype)
        for key, record in self.companion.items():
            asm_idx = self.assemblies.lookup(key)
            assert asm_idx is not None
            for gene, count in record.items():
                gene_idx = self.genes.lookup(gene)
                assert gene_idx is not None
                if count > 0:
                    cells[gene_idx, asm_idx] = count
        return cells

    def append_derived_genes(self, gene1: str | None, gene2: str | None, mode: DerivedMode) -> PresenceMatrix:
        """
        Append the two difference rows "gene1 exceeds gene2" and "gene2 exceeds gene1".

        In counts mode a cell is set when one gene's count is strictly greater than the
        other's. In presence mode a cell is set when one gene is present and the other
        is absent. The two rows are therefore never both set for the same assembly.
        Genes missing from an assembly's counts read as 0.

        Requests naming the same gene twice, missing either gene, or whose derived
        names already exist return this matrix unchanged.

        Args:
            gene1 (str | None): First gene to compare
            gene2 (str | None): Second gene to compare
            mode (DerivedMode): Either "counts" or "presence"

        Returns:
            PresenceMatrix: A matrix with two extra rows, or `self` for a no-op
        """
        assert mode in DERIVED_SEPARATORS, f"Unsupported comparison mode '{mode}'."
        if not gene1 or not gene2 or gene1 == gene2:
            logger.debug(f"Ignoring difference request for '{gene1}' and '{gene2}'.")
            return self

        name1 = derived_gene_name(gene1, gene2, mode)
        name2 = derived_gene_name(gene2, gene1, mode)
        if name1 == name2 or name1 in self.genes or name2 in self.genes:
            logger.debug(f"Difference genes '{name1}' and '{name2}' already exist or collide; nothing to add.")
            return self

        genes = self.genes.copy()
        idx1 = genes.register_if_absent(name1)
        idx2 = genes.register_if_absent(name2)

        # reallocate rather than resize so that no region of the new store is stale
        cells = np.zeros((len(genes), len(self.assemblies)), dtype=self.cells.dtype)
        cells[: self.cells.shape[0]] = self.cells

        names = self.assemblies.names()
        c1 = np.array([self.count(name, gene1) for name in names], dtype=np.int64)
        c2 = np.array([self.count(name, gene2) for name in names], dtype=np.int64)
        if mode == "counts":
            p1 = c1 > c2
            p2 = c2 > c1
        else:
            p1 = (c1 > 0) & (c2 == 0)
            p2 = (c2 > 0) & (c1 == 0)

        # a toggled matrix stays uniformly toggled, new rows included
        cells[idx1] = (p1 != self.inverted).astype(cells.dtype)
        cells[idx2] = (p2 != self.inverted).astype(cells.dtype)

        companion = {key: dict(record) for key, record in self.companion.items()}
        for key, record in companion.items():
            asm_idx = self.assemblies.lookup(key)
            assert asm_idx is not None
            record[name1] = int(p1[asm_idx])
            record[name2] = int(p2[asm_idx])

        logger.info(f"Added difference genes '{name1}' and '{name2}'.")
        return replace(
            self,
            genes=genes,
            cells=cells,
            companion=companion,
            derived_genes=(*self.derived_genes, name1, name2),
        )
