#!/usr/bin/env python3

# pyright: basic, reportUnknownMemberType=false

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

import polars as pl
from loguru import logger
from typing_extensions import Self

from gene_lineage_viz.config import (
    ALL_LEVELS,
    DEFAULT_LEVELS,
    NormalizeMode,
    TaxonomicLevel,
    VisualizationConfig,
)
from gene_lineage_viz.datasets import (
    RECORD_SCHEMA,
    DatasetLoadError,
    load_gene_table,
    load_reference_records,
    normalize_records,
)
from gene_lineage_viz.filters import (
    Selection,
    filter_by_lineage,
    filter_by_lineage_search,
    filter_by_lineage_size,
    filter_zero_coverage,
    find_lineage_level,
    reset,
    select,
)
from gene_lineage_viz.layout import CoordinateMap, compute_layout, usable_width
from gene_lineage_viz.matrix import PresenceMatrix
from gene_lineage_viz.registry import IndexRegistry
from gene_lineage_viz.runs import LineageRun, level_values, runs_by_level
from gene_lineage_viz.tabular import GeneTable

# The container width assumed before the renderer reports a real one
DEFAULT_CONTAINER_WIDTH = 1200


@dataclass(frozen=True, eq=False)
class ViewState:
    """
    Everything the renderer needs to draw one frame of the viewer.

    A ViewState is never modified. Each user action produces a new one through
    `reduce`, and the derived views (`coords` and `runs`) are rebuilt from scratch
    whenever the active records, the width, the selected levels, or the normalization
    mode change.
    """

    config: VisualizationConfig = field(default_factory=VisualizationConfig)
    origin: pl.DataFrame = field(default_factory=lambda: pl.DataFrame(schema=RECORD_SCHEMA))
    records: pl.DataFrame = field(default_factory=lambda: pl.DataFrame(schema=RECORD_SCHEMA))
    assemblies: tuple[str, ...] = ()
    asm_index: IndexRegistry = field(default_factory=IndexRegistry)
    selected_levels: tuple[TaxonomicLevel, ...] = DEFAULT_LEVELS
    gene_table: GeneTable | None = None
    total_input: int = 0
    matrix: PresenceMatrix | None = None
    show_presence: bool = True
    active_genes: tuple[str, ...] = ()
    normalize: NormalizeMode = None
    container_width: float = DEFAULT_CONTAINER_WIDTH
    coords: CoordinateMap = field(default_factory=dict)
    runs: dict[TaxonomicLevel, list[LineageRun[str]]] = field(default_factory=dict)
    busy: bool = False
    message: str = ""
    notice: str | None = None

    @classmethod
    def initial(cls, config: VisualizationConfig | None = None) -> Self:
        return cls(config=config or VisualizationConfig())

    @property
    def total_width(self) -> float:
        return usable_width(self.container_width, self.config)

    @property
    def gene_names(self) -> list[str]:
        return [] if self.matrix is None else self.matrix.gene_names

    @property
    def companion(self) -> dict[str, dict[str, int]]:
        return {} if self.matrix is None else self.matrix.companion


# -------------------------------------------------------------------------------------
# Actions
# -------------------------------------------------------------------------------------


@dataclass(frozen=True)
class LoadReference:
    records: pl.DataFrame


@dataclass(frozen=True)
class LoadGeneTable:
    table: GeneTable
    use_counts: bool = False


@dataclass(frozen=True)
class SetSelectedLevels:
    levels: Sequence[TaxonomicLevel]


@dataclass(frozen=True)
class SetNormalizeLevel:
    mode: NormalizeMode


@dataclass(frozen=True)
class SetWidth:
    width: float


@dataclass(frozen=True)
class FilterByLineage:
    level: TaxonomicLevel
    category: str


@dataclass(frozen=True)
class FilterBySize:
    level: TaxonomicLevel
    threshold: int


@dataclass(frozen=True)
class FilterBySubstring:
    level: TaxonomicLevel
    term: str


@dataclass(frozen=True)
class SearchLineage:
    term: str


@dataclass(frozen=True)
class FilterZeroCoverage:
    pass


@dataclass(frozen=True)
class ResetFilters:
    pass


@dataclass(frozen=True)
class ToggleGene:
    gene: str


@dataclass(frozen=True)
class ToggleAllGenes:
    pass


@dataclass(frozen=True)
class TogglePresence:
    pass


@dataclass(frozen=True)
class AddDifference:
    gene1: str | None
    gene2: str | None
    use_counts: bool = False


Action = (
    LoadReference
    | LoadGeneTable
    | SetSelectedLevels
    | SetNormalizeLevel
    | SetWidth
    | FilterByLineage
    | FilterBySize
    | FilterBySubstring
    | SearchLineage
    | FilterZeroCoverage
    | ResetFilters
    | ToggleGene
    | ToggleAllGenes
    | TogglePresence
    | AddDifference
)


def busy_message(action: Action) -> str | None:
    """
    The message to show while `action` runs, or None for actions quick enough that no
    busy indicator is needed.
    """
    match action:
        case LoadGeneTable():
            return "Processing TSV data..."
        case FilterByLineage(level=level, category=category):
            return f"Filtering by {level}: {category}..."
        case FilterBySize(level=level, threshold=threshold):
            return f"Filtering by {level} size (min: {threshold})..."
        case FilterBySubstring(level=level, term=term):
            return f"Filtering {level} names containing '{term}'..."
        case SearchLineage(term=term):
            return f"Searching for lineage: {term}..."
        case FilterZeroCoverage():
            return "Filtering zero assemblies..."
        case ResetFilters():
            return "Resetting filters..."
        case ToggleGene():
            return "Processing gene selection..."
        case ToggleAllGenes():
            return "Processing selection of all genes..."
        case AddDifference():
            return "Creating gene comparison visualization..."
        case _:
            return None


# -------------------------------------------------------------------------------------
# Pure transitions
# -------------------------------------------------------------------------------------


def derive_view(state: ViewState) -> ViewState:
    """
    Rebuild the coordinate map and the runs for the current records, discarding the
    previous ones entirely.
    """
    wanted = set(state.selected_levels)
    if state.normalize in ALL_LEVELS:
        wanted.add(state.normalize)
    runs = runs_by_level(state.records, [level for level in ALL_LEVELS if level in wanted])

    values = level_values(state.records, state.normalize) if state.normalize in ALL_LEVELS else None
    coords = compute_layout(state.assemblies, state.total_width, state.normalize, values)
    return replace(state, coords=coords, runs=runs)


def _apply_selection(state: ViewState, selection: Selection) -> ViewState:
    logger.info(f"{len(selection.assemblies)} of {state.origin.height} assemblies are active.")
    return derive_view(replace(state, records=selection.records, assemblies=tuple(selection.assemblies)))


def _load_reference(state: ViewState, records: pl.DataFrame) -> ViewState:
    records = normalize_records(records)
    selection = select(records)
    asm_index = IndexRegistry.from_names(selection.assemblies)

    # the matrix is laid out against the assembly ordinals, so a new reference dataset
    # means rebuilding it from the table that was loaded before
    matrix = None
    if state.gene_table is not None:
        matrix = PresenceMatrix.build(
            state.gene_table,
            asm_index,
            use_counts=state.matrix.use_counts if state.matrix is not None else False,
        )
    active_genes = tuple(gene for gene in state.active_genes if matrix is not None and gene in matrix.genes)

    return derive_view(
        replace(
            state,
            origin=records,
            records=selection.records,
            assemblies=tuple(selection.assemblies),
            asm_index=asm_index,
            matrix=matrix,
            show_presence=True,
            active_genes=active_genes,
        ),
    )


def _add_difference(state: ViewState, action: AddDifference) -> ViewState:
    if state.matrix is None:
        logger.debug("No gene table is loaded; ignoring the difference request.")
        return state
    mode = "counts" if action.use_counts else "presence"
    matrix = state.matrix.append_derived_genes(action.gene1, action.gene2, mode)
    if matrix is state.matrix:
        return state
    new_genes = matrix.derived_genes[len(state.matrix.derived_genes) :]
    return replace(state, matrix=matrix, active_genes=(*state.active_genes, *new_genes))


def _search_lineage(state: ViewState, term: str) -> ViewState:
    if not term.strip():
        return state
    level = find_lineage_level(state.origin, term)
    if level is None:
        logger.warning(f"No lineage matches '{term}'.")
        return replace(state, notice=f"No lineage: {term}")
    return _apply_selection(state, filter_by_lineage(state.records, level, term.strip()))


def reduce(state: ViewState, action: Action) -> ViewState:  # noqa: C901, PLR0911
    """
    Compute the state that results from applying `action` to `state`.

    `state` itself is left untouched. Requests that cannot be honoured, such as a
    difference between a gene and itself, return an equivalent state.

    Args:
        state (ViewState): The current state
        action (Action): The user request to apply

    Returns:
        ViewState: The next state
    """
    state = replace(state, notice=None)
    match action:
        case LoadReference(records=records):
            return _load_reference(state, records)
        case LoadGeneTable(table=table, use_counts=use_counts):
            matrix = PresenceMatrix.build(table, state.asm_index, use_counts=use_counts)
            return replace(
                state,
                gene_table=table,
                total_input=table.total_input,
                matrix=matrix,
                show_presence=True,
                active_genes=(),
            )
        case SetSelectedLevels(levels=levels):
            chosen = tuple(dict.fromkeys(levels)) or DEFAULT_LEVELS
            return derive_view(replace(state, selected_levels=chosen))
        case SetNormalizeLevel(mode=mode):
            return derive_view(replace(state, normalize=mode))
        case SetWidth(width=width):
            return derive_view(replace(state, container_width=width))
        case FilterByLineage(level=level, category=category):
            return _apply_selection(state, filter_by_lineage(state.records, level, category))
        case FilterBySize(level=level, threshold=threshold):
            return _apply_selection(state, filter_by_lineage_size(state.records, level, threshold))
        case FilterBySubstring(level=level, term=term):
            return _apply_selection(state, filter_by_lineage_search(state.records, level, term))
        case SearchLineage(term=term):
            return _search_lineage(state, term)
        case FilterZeroCoverage():
            if state.matrix is None:
                logger.warning("No gene table is loaded, so every assembly counts as having zero coverage.")
            return _apply_selection(state, filter_zero_coverage(state.records, state.companion))
        case ResetFilters():
            return _apply_selection(state, reset(state.origin))
        case ToggleGene(gene=gene):
            if gene in state.active_genes:
                return replace(state, active_genes=tuple(g for g in state.active_genes if g != gene))
            return replace(state, active_genes=(*state.active_genes, gene))
        case ToggleAllGenes():
            return replace(state, active_genes=() if state.active_genes else tuple(state.gene_names))
        case TogglePresence():
            if state.matrix is None:
                return state
            return replace(state, matrix=state.matrix.toggle_presence(), show_presence=not state.show_presence)
        case AddDifference():
            return _add_difference(state, action)
        case _:
            msg = f"Unsupported action: {action!r}"
            raise ValueError(msg)


# -------------------------------------------------------------------------------------
# Controller
# -------------------------------------------------------------------------------------

Subscriber = Callable[[ViewState], None]
Notifier = Callable[[str], None]


def _log_notice(message: str) -> None:
    logger.warning(message)


class SessionController:
    """
    Owns the current ViewState and applies actions to it one at a time.

    For slow actions the controller first publishes a busy copy of the current state
    so a renderer can show an indicator, then runs the transition and publishes the
    settled result. Actions dispatched while another is still running, for example
    from inside a subscriber, are queued and applied in the order they arrived.

    Failures to read a dataset are reported through `notify` and leave the state as it
    was.
    """

    def __init__(
        self,
        config: VisualizationConfig | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self.config = config or VisualizationConfig()
        self.state = ViewState.initial(self.config)
        self._notify: Notifier = notify or _log_notice
        self._subscribers: list[Subscriber] = []
        self._queue: deque[Action] = deque()
        self._dispatching = False

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def _publish(self, state: ViewState) -> None:
        self.state = state
        for subscriber in list(self._subscribers):
            subscriber(state)

    def _run(self, action: Action) -> None:
        before = self.state
        message = busy_message(action)
        if message is not None:
            self._publish(replace(before, busy=True, message=message))

        try:
            after = reduce(before, action)
        except Exception:
            self._publish(replace(before, busy=False, message=""))
            raise

        self._publish(replace(after, busy=False, message=""))
        if after.notice is not None:
            self._notify(after.notice)

    def dispatch(self, action: Action) -> ViewState:
        self._queue.append(action)
        if self._dispatching:
            return self.state

        # a failing action does not stop the ones queued behind it; the first failure
        # is raised once the queue is empty
        failure: Exception | None = None
        self._dispatching = True
        try:
            while self._queue:
                action = self._queue.popleft()
                try:
                    self._run(action)
                except Exception as exc:
                    logger.error(f"Action {action!r} failed: {exc}")
                    failure = failure or exc
        finally:
            self._dispatching = False
        if failure is not None:
            raise failure
        return self.state

    def load_reference(self, json_path: str | Path) -> bool:
        """
        Load a reference dataset from disk, returning False (with the existing state
        kept) if it could not be read.
        """
        try:
            records = load_reference_records(json_path)
        except DatasetLoadError as exc:
            self._notify(f"Error loading GTDB data: {exc}")
            return False
        self.dispatch(LoadReference(records))
        return True

    def select_dataset(self, name: str | None = None) -> bool:
        if name is not None and name not in self.config.datasets:
            logger.warning(f"'{name}' is not one of the configured datasets {self.config.datasets}.")
        return self.load_reference(self.config.dataset_path(name))

    def load_gene_table(self, tsv_path: str | Path, use_counts: bool = False) -> bool:
        try:
            table = load_gene_table(tsv_path)
        except DatasetLoadError as exc:
            self._notify(f"Error loading gene table: {exc}")
            return False
        self.dispatch(LoadGeneTable(table, use_counts=use_counts))
        return True

    def on_width_change(self, width: float) -> ViewState:
        return self.dispatch(SetWidth(width))
