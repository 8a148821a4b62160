"""
Incremental search over the host application's browser list.

``SearchEngine`` implements find / find next / find previous with optional
wraparound. It never raises for expected failures: every call returns a
``SearchOutcome`` describing a match, a miss, or why the search could not run.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ax_elements import ImageCell, Row, TreeSnapshot, TreeSource, cell_text, describe_cells
from browser_columns import ColumnKey, ColumnRegistry, ColumnVisibilityManager
from host_app import HostApplication, ResultActuator
from readiness import WaitPolicy, wait_with_policy
from search_errors import MESSAGES, NO_MATCH_MESSAGE, FailureReason, VisibilityError
from search_state import SearchState

DEFAULT_PROJECT_MARKER = "F General ObjectGlyphs Project"


class SearchMode(str, Enum):
    FIND = "find"
    NEXT = "findNext"
    PREVIOUS = "findPrevious"


class OutcomeStatus(str, Enum):
    MATCHED = "matched"
    NO_MATCH = "noMatch"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one search call."""
    status: OutcomeStatus
    reason: Optional[FailureReason] = None
    row_index: Optional[int] = None
    is_project: bool = False
    detail: Optional[FailureReason] = None

    @property
    def matched(self) -> bool:
        return self.status is OutcomeStatus.MATCHED

    @property
    def title(self) -> str:
        return self._text()[0]

    @property
    def message(self) -> str:
        return self._text()[1]

    def _text(self):
        if self.status is OutcomeStatus.NO_MATCH:
            return NO_MATCH_MESSAGE
        if self.reason is not None:
            # a failed column precondition is more useful with the step that failed
            return MESSAGES[self.detail or self.reason]
        return ("", "")


@dataclass(frozen=True)
class RowMatch:
    row: Row
    is_project: bool = False


def _scan_range(mode: SearchMode, last_index: Optional[int], row_count: int) -> Iterable[int]:
    """1-based row positions to visit, in visiting order."""
    if mode is SearchMode.NEXT and last_index is not None:
        return range(max(last_index + 1, 1), row_count + 1)
    if mode is SearchMode.PREVIOUS and last_index is not None:
        return range(min(last_index - 1, row_count), 0, -1)
    return range(1, row_count + 1)


class SearchEngine:
    """
    Searches the browser list for a literal substring.

    Args:
        state: Durable panel state. ``last_match_index`` and ``history`` are
            updated here; the flags are read on every call.
        tree: Live browser list, re-read on every call.
        host: Host application (frontmost, list view, playback).
        registry: Column key to label/position mapping.
        visibility: Shows hidden columns before a column-scoped search.
        actuator: What to do with a matched row. Defaults to a
            ``ResultActuator`` for ``host`` and ``tree``.
        list_view_policy: How long to wait for the browser to reach list view.
        project_marker: AXDescription of the icon that marks a project row.
    """

    def __init__(self, state: SearchState, tree: TreeSource, host: HostApplication,
                 registry: Optional[ColumnRegistry] = None,
                 visibility: Optional[ColumnVisibilityManager] = None,
                 actuator: Optional[ResultActuator] = None,
                 list_view_policy: Optional[WaitPolicy] = None,
                 project_marker: str = DEFAULT_PROJECT_MARKER,
                 logger: Optional[logging.Logger] = None):
        if logger:
            self.logger = logger
        else:
            self.logger = logging.getLogger(__name__)
            if not self.logger.hasHandlers():
                self.logger.addHandler(logging.NullHandler())
        self.state = state
        self.tree = tree
        self.host = host
        self.registry = registry or ColumnRegistry(tree)
        self.visibility = visibility or ColumnVisibilityManager(self.registry, host, logger=self.logger)
        self.actuator = actuator or ResultActuator(host, tree, logger=self.logger)
        self.list_view_policy = list_view_policy or WaitPolicy()
        self.project_marker = project_marker

    # --- entry points ---

    def find(self, query: str, column=None) -> SearchOutcome:
        return self.search(query, column, SearchMode.FIND)

    def find_next(self, query: str, column=None) -> SearchOutcome:
        return self.search(query, column, SearchMode.NEXT)

    def find_previous(self, query: str, column=None) -> SearchOutcome:
        return self.search(query, column, SearchMode.PREVIOUS)

    def search(self, query: str, column=None, mode: SearchMode = SearchMode.FIND) -> SearchOutcome:
        """
        Runs one search. ``column`` defaults to the column stored in state.

        Returns:
            MATCHED with the matched row position, NO_MATCH, INVALID for an
            empty query, or FAILED with the readiness step that failed.
        """
        mode = SearchMode(mode)
        column = self.state.column if column is None else ColumnKey.parse(column)
        try:
            return self._search(query or "", column, mode)
        except VisibilityError as e:
            self.logger.error(f"Column '{column.value}' could not be shown: {e}")
            return SearchOutcome(OutcomeStatus.FAILED, FailureReason.COLUMN_NOT_SHOWN, detail=e.reason)

    # --- algorithm ---

    def _search(self, query: str, column: ColumnKey, mode: SearchMode) -> SearchOutcome:
        if not query.strip():
            self.logger.info("Search rejected: empty query.")
            return SearchOutcome(OutcomeStatus.INVALID, FailureReason.EMPTY_QUERY)

        match_case = self.state.match_case
        needle = query if match_case else query.lower()

        if self.state.add_to_history(query):
            self.logger.debug(f"Added '{query}' to search history.")

        def list_view_ready():
            if not self.host.is_list_view():
                self.host.show_list_view()
            return self.host.is_list_view()

        if not wait_with_policy(list_view_ready, self.list_view_policy, "browser list view"):
            return SearchOutcome(OutcomeStatus.FAILED, FailureReason.LIST_VIEW_UNAVAILABLE)

        column_index = None
        if column is not ColumnKey.ALL:
            self.visibility.ensure_visible(column)
            if mode is SearchMode.FIND:
                self._expand_top_level_rows()
            column_index = self.registry.resolve_index(column, self.registry.header_titles())
            if column_index is None:
                self.logger.error(f"Column '{self.registry.display_label(column)}' not found among the browser headers.")
                return SearchOutcome(OutcomeStatus.FAILED, FailureReason.COLUMN_NOT_SHOWN)

        last_index = self.state.last_match_index
        first_attempt = True
        while True:
            snapshot = self.tree.snapshot()
            row_count = len(snapshot)
            if row_count <= 1:
                self.logger.debug(f"Browser has {row_count} row(s); nothing to search.")
                break
            found = self._scan(snapshot, _scan_range(mode, last_index, row_count),
                               needle, column_index, match_case)
            if found:
                return self._on_match(found)
            if not (self.state.loop_search and mode is not SearchMode.FIND and first_attempt):
                break
            # wrap to the opposite end and scan once more
            last_index = 0 if mode is SearchMode.NEXT else row_count + 1
            first_attempt = False
            self.logger.debug(f"{mode.value}: wrapping search around.")

        self.logger.info(f"No matches found for '{query}' ({mode.value}, column={column.value}).")
        return SearchOutcome(OutcomeStatus.NO_MATCH)

    def _expand_top_level_rows(self):
        expanded = 0
        for row in self.tree.snapshot().rows:
            if row.is_row and row.disclosure_level <= 1 and not row.disclosing:
                if self.tree.expand_row(row):
                    expanded += 1
        if expanded:
            self.logger.debug(f"Expanded {expanded} collapsed top-level row(s).")

    def _scan(self, snapshot: TreeSnapshot, positions: Iterable[int], needle: str,
              column_index: Optional[int], match_case: bool) -> Optional[RowMatch]:
        for position in positions:
            row = snapshot.row(position)
            if row is None or not row.is_row:
                continue
            found = self.match_row(row, needle, column_index, match_case)
            if found:
                return found
        return None

    def match_row(self, row: Row, needle: str, column_index: Optional[int] = None,
                  match_case: bool = False) -> Optional[RowMatch]:
        """
        Tests one row. With no ``column_index`` every cell is tried in order and
        the first containing ``needle`` wins; otherwise only that column's cell.
        ``needle`` must already be folded when ``match_case`` is False.
        """
        cells = row.cells if column_index is None else (row.cell(column_index),)
        is_project = False
        for cell in cells:
            if isinstance(cell, ImageCell) and cell.has_marker(self.project_marker):
                is_project = True
            value = cell_text(cell)
            if value is None:
                continue
            if not match_case:
                value = value.lower()
            if needle in value:
                return RowMatch(row, is_project)
        return None

    def _on_match(self, found: RowMatch) -> SearchOutcome:
        row = found.row
        self.state.last_match_index = row.index
        self.logger.info(f"Match at row {row.index}{' (project)' if found.is_project else ''}.")
        self.logger.debug(f"Row {row.index}: {describe_cells(row.cells)}")
        self.actuator.actuate(
            row,
            open_project=found.is_project and self.state.open_project_on_match,
            play=self.state.play_after_find,
        )
        return SearchOutcome(OutcomeStatus.MATCHED, row_index=row.index, is_project=found.is_project)
