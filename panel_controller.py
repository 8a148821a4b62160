"""
Event handling for the search panel.

The panel sends typed events (``{"type": "find", "value": ..., "column": ...}``)
and receives its state back through a ``PanelView``. Nothing here depends on
Qt; ``gui.search_panel`` provides the real view.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from browser_columns import ColumnKey, ColumnRegistry
from browser_search import SearchEngine, SearchMode, SearchOutcome
from search_state import SEARCH_KEYS, SearchState

FLAG_EVENTS = {
    "matchCase": "match_case",
    "playAfterFind": "play_after_find",
    "loopSearch": "loop_search",
    "openProject": "open_project_on_match",
}

SEARCH_EVENTS = {
    "find": SearchMode.FIND,
    "findNext": SearchMode.NEXT,
    "findPrevious": SearchMode.PREVIOUS,
}

CLEAR_HISTORY_TITLE = "Clear History"
EMPTY_HISTORY_TITLE = "History is empty"


class PanelView:
    """What the controller needs from the panel UI."""

    def render_state(self, state: Dict[str, Any]):
        """Show the query, the four flags and focus the search field."""
        raise NotImplementedError

    def set_query(self, text: str):
        """Replace the pending query in the search field and focus it."""
        raise NotImplementedError

    def show_alert(self, title: str, message: str):
        raise NotImplementedError

    def show_history(self, items: List["HistoryMenuItem"]):
        raise NotImplementedError


@dataclass(frozen=True)
class HistoryMenuItem:
    title: str
    enabled: bool = True
    separator: bool = False
    action: Optional[Callable[[], None]] = None


class HistorySurface:
    """The history popup: recent queries, most recent last."""

    def __init__(self, state: SearchState, view: PanelView):
        self.state = state
        self.view = view

    def list(self) -> List[str]:
        return self.state.history

    def clear(self):
        self.state.clear_history()

    def select(self, entry: str):
        """Puts ``entry`` back into the search field without searching."""
        self.view.set_query(entry)

    def menu_items(self) -> List[HistoryMenuItem]:
        entries = self.list()
        if not entries:
            return [HistoryMenuItem(EMPTY_HISTORY_TITLE, enabled=False)]
        items = [HistoryMenuItem(entry, action=lambda e=entry: self.select(e)) for entry in entries]
        items.append(HistoryMenuItem("-", enabled=False, separator=True))
        items.append(HistoryMenuItem(CLEAR_HISTORY_TITLE, action=self.clear))
        return items


class SearchPanelController:
    """
    Dispatches panel events to the search engine and state.

    The panel is re-rendered whenever one of the ``search.*`` keys changes, so
    every state-affecting event (and any other writer of the store) is
    reflected back in the view.
    """

    def __init__(self, engine: SearchEngine, view: PanelView, logger: Optional[logging.Logger] = None):
        self.engine = engine
        self.view = view
        self.history = HistorySurface(engine.state, view)
        self.logger = logger or logging.getLogger(__name__)
        self._unwatch = [self.state.store.watch(key, self._on_state_changed) for key in SEARCH_KEYS]

    @property
    def state(self) -> SearchState:
        return self.engine.state

    @property
    def registry(self) -> ColumnRegistry:
        return self.engine.registry

    def detach(self):
        """Stops rendering on state changes."""
        for unwatch in self._unwatch:
            unwatch()
        self._unwatch = []

    def column_options(self):
        """``(key, label, selected)`` for the column chooser."""
        current = self.state.column.value
        return [(key, label, key == current) for key, label in self.registry.options()]

    def update_info(self):
        self.view.render_state(self.state.as_dict())

    def _on_state_changed(self, key: str, value: Any):
        self.logger.debug(f"State changed: {key} = {value!r}")
        self.update_info()

    def handle(self, event: Dict[str, Any]) -> Optional[SearchOutcome]:
        """
        Handles one panel event. Returns the search outcome for search events,
        None otherwise.
        """
        event_type = event.get("type")
        try:
            if event_type in SEARCH_EVENTS:
                return self._search(event, SEARCH_EVENTS[event_type])
            if event_type == "clear":
                self.state.clear()
                self.update_info()
            elif event_type == "update":
                if event.get("value") is not None:
                    self.state.query = event["value"]
                if event.get("column") is not None:
                    self.state.column = event["column"]
            elif event_type in FLAG_EVENTS:
                setattr(self.state, FLAG_EVENTS[event_type], bool(event.get(event_type)))
            elif event_type == "history":
                self.view.show_history(self.history.menu_items())
            elif event_type == "historySelect":
                self.history.select(event.get("value") or "")
            elif event_type == "clearHistory":
                self.history.clear()
            else:
                self.logger.warning(f"Unknown panel event type: {event_type!r}")
        except Exception as e:
            self.logger.error(f"Error handling panel event {event_type!r}: {e}", exc_info=True)
            self.view.show_alert("Search Failed", str(e))
        return None

    def _search(self, event: Dict[str, Any], mode: SearchMode) -> SearchOutcome:
        value = event.get("value")
        if value is None:
            value = self.state.query
        column = ColumnKey.parse(event.get("column")) if event.get("column") is not None else self.state.column
        self.state.query = value
        self.state.column = column
        outcome = self.engine.search(value, column, mode)
        if not outcome.matched:
            self.view.show_alert(outcome.title, outcome.message)
        return outcome
