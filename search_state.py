"""
Durable search panel state.

``PreferencesStore`` is a small JSON-backed key-value store with change
notification; ``SearchState`` is the typed view of the ``search.*`` keys
held in it.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from browser_columns import ColumnKey

MAXIMUM_HISTORY = 5

LAST_VALUE_KEY = "search.lastValue"
LAST_INDEX_KEY = "search.lastIndex"
LAST_COLUMN_KEY = "search.lastColumn"
MATCH_CASE_KEY = "search.matchCase"
PLAY_AFTER_FIND_KEY = "search.playAfterFind"
LOOP_SEARCH_KEY = "search.loopSearch"
OPEN_PROJECT_KEY = "search.openProject"
HISTORY_KEY = "search.history"

SEARCH_KEYS = (
    LAST_VALUE_KEY, LAST_INDEX_KEY, LAST_COLUMN_KEY, MATCH_CASE_KEY,
    PLAY_AFTER_FIND_KEY, LOOP_SEARCH_KEY, OPEN_PROJECT_KEY, HISTORY_KEY,
)

Listener = Callable[[str, Any], None]


class PreferencesStore:
    """
    Key-value preferences persisted as a JSON object.

    Every change is written through to ``path`` immediately. With no path the
    store lives in memory only.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, logger: Optional[logging.Logger] = None):
        self.path = Path(path).expanduser() if path else None
        self.logger = logger or logging.getLogger(__name__)
        self._values: Dict[str, Any] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._load()

    def _load(self):
        if not self.path or not self.path.exists():
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Could not read preferences from {self.path}: {e}")
            return
        if isinstance(data, dict):
            self._values = data
        else:
            self.logger.warning(f"Ignoring preferences file {self.path}: expected a JSON object.")

    def _save(self):
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # write a sibling temp file, then swap it in so a crash never leaves partial JSON
            fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent),
                                            prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(self._values, f, indent=2)
                os.replace(tmp_name, self.path)
            except Exception:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            self.logger.error(f"Failed to write preferences to {self.path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any):
        if key in self._values and self._values[key] == value:
            return
        self._values[key] = value
        self._save()
        for listener in list(self._listeners.get(key, [])):
            listener(key, value)

    def watch(self, key: str, listener: Listener) -> Callable[[], None]:
        """Calls ``listener(key, value)`` whenever ``key`` changes. Returns an unsubscribe function."""
        self._listeners.setdefault(key, []).append(listener)

        def unwatch():
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)
        return unwatch


class SearchState:
    """The persisted state of one search panel."""

    def __init__(self, store: Optional[PreferencesStore] = None):
        self.store = store if store is not None else PreferencesStore()

    # --- query and position ---

    @property
    def query(self) -> str:
        return self.store.get(LAST_VALUE_KEY, "") or ""

    @query.setter
    def query(self, value: str):
        self.store.set(LAST_VALUE_KEY, value or "")

    @property
    def last_match_index(self) -> Optional[int]:
        value = self.store.get(LAST_INDEX_KEY)
        return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None

    @last_match_index.setter
    def last_match_index(self, value: Optional[int]):
        self.store.set(LAST_INDEX_KEY, value)

    @property
    def column(self) -> ColumnKey:
        return ColumnKey.parse(self.store.get(LAST_COLUMN_KEY, ColumnKey.ALL.value))

    @column.setter
    def column(self, value: Union[ColumnKey, str]):
        self.store.set(LAST_COLUMN_KEY, ColumnKey.parse(value).value)

    # --- flags ---

    def _flag(self, key: str) -> bool:
        return bool(self.store.get(key, False))

    @property
    def match_case(self) -> bool:
        return self._flag(MATCH_CASE_KEY)

    @match_case.setter
    def match_case(self, value: bool):
        self.store.set(MATCH_CASE_KEY, bool(value))

    @property
    def play_after_find(self) -> bool:
        return self._flag(PLAY_AFTER_FIND_KEY)

    @play_after_find.setter
    def play_after_find(self, value: bool):
        self.store.set(PLAY_AFTER_FIND_KEY, bool(value))

    @property
    def loop_search(self) -> bool:
        return self._flag(LOOP_SEARCH_KEY)

    @loop_search.setter
    def loop_search(self, value: bool):
        self.store.set(LOOP_SEARCH_KEY, bool(value))

    @property
    def open_project_on_match(self) -> bool:
        return self._flag(OPEN_PROJECT_KEY)

    @open_project_on_match.setter
    def open_project_on_match(self, value: bool):
        self.store.set(OPEN_PROJECT_KEY, bool(value))

    # --- history ---

    @property
    def history(self) -> List[str]:
        """Past queries, oldest first. Always a copy."""
        stored = self.store.get(HISTORY_KEY, [])
        return [str(v) for v in stored] if isinstance(stored, list) else []

    def add_to_history(self, query: str) -> bool:
        """
        Appends ``query`` unless it is already present, evicting the oldest
        entries to stay within ``MAXIMUM_HISTORY``.

        Returns:
            True if the history changed.
        """
        history = self.history
        if query in history:
            return False
        while len(history) >= MAXIMUM_HISTORY:
            history.pop(0)
        history.append(query)
        self.store.set(HISTORY_KEY, history)
        return True

    def clear_history(self):
        self.store.set(HISTORY_KEY, [])

    # --- resets ---

    def clear(self):
        """Forgets the query and the last match position."""
        self.query = ""
        self.last_match_index = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "lastMatchIndex": self.last_match_index,
            "column": self.column.value,
            "matchCase": self.match_case,
            "playAfterFind": self.play_after_find,
            "loopSearch": self.loop_search,
            "openProject": self.open_project_on_match,
            "history": self.history,
        }
