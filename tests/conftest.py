"""Shared fixtures: fabricated browser trees and a fake host application."""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
ROOT_PATH = str(ROOT_DIR)

if ROOT_PATH not in sys.path:
    sys.path.insert(0, ROOT_PATH)

import readiness  # noqa: E402
from ax_elements import (  # noqa: E402
    ROW_ROLE, ImageCell, MenuEntry, Row, TextCell, TreeSnapshot, TreeSource,
)
from browser_columns import ColumnRegistry, ColumnVisibilityManager  # noqa: E402
from browser_search import DEFAULT_PROJECT_MARKER, SearchEngine  # noqa: E402
from host_app import HostApplication, ResultActuator  # noqa: E402
from readiness import WaitPolicy  # noqa: E402
from search_state import PreferencesStore, SearchState  # noqa: E402

FAST = WaitPolicy(attempts=3, interval=0.0)


def make_row(*texts, role=ROW_ROLE, level=1, disclosing=True, project=False):
    """A row whose cells hold ``texts``; ``project`` puts the project icon in the first cell."""
    cells = [TextCell(t) for t in texts]
    if project and cells:
        cells[0] = ImageCell(DEFAULT_PROJECT_MARKER, cells[0])
    return Row(index=0, role=role, cells=tuple(cells), disclosure_level=level, disclosing=disclosing)


class FakeTree(TreeSource):
    """In-memory browser list. Row indices are assigned on every snapshot."""

    def __init__(self, rows=None, headers: Optional[List[str]] = None,
                 menu_titles: Optional[List[str]] = None):
        self.rows: List[Row] = list(rows or [])
        self.headers = headers
        self.menu_titles = list(menu_titles or [])
        self.children_on_expand: Dict[int, List[Row]] = {}
        self.menu_open = False
        self.menu_opens = True
        self.menu_closes_on_press = True
        self.menu_readable = True
        self.press_succeeds = True
        self.snapshot_calls = 0
        self.expanded: List[int] = []
        self.selected: List[int] = []
        self.revealed: List[int] = []
        self.pressed: List[str] = []
        self.menu_closed_by_cancel = False

    def snapshot(self) -> TreeSnapshot:
        self.snapshot_calls += 1
        return TreeSnapshot(tuple(replace(r, index=i) for i, r in enumerate(self.rows, start=1)))

    def column_headers(self):
        return list(self.headers) if self.headers is not None else None

    def expand_row(self, row: Row) -> bool:
        self.expanded.append(row.index)
        position = row.index - 1
        self.rows[position] = replace(self.rows[position], disclosing=True)
        for offset, child in enumerate(self.children_on_expand.pop(row.index, []), start=1):
            self.rows.insert(position + offset, child)
        return True

    def select_row(self, row: Row) -> bool:
        self.selected.append(row.index)
        return True

    def reveal_row(self, row: Row) -> bool:
        self.revealed.append(row.index)
        return True

    def show_columns_menu(self) -> bool:
        if self.menu_opens:
            self.menu_open = True
        return self.menu_opens

    def is_columns_menu_showing(self) -> bool:
        return self.menu_open

    def columns_menu_entries(self):
        if not self.menu_readable:
            return None
        return [MenuEntry(title=t, checked=t in (self.headers or [])) for t in self.menu_titles]

    def press_menu_entry(self, entry: MenuEntry) -> bool:
        self.pressed.append(entry.title)
        if self.menu_closes_on_press:
            self.menu_open = False
        if self.press_succeeds:
            self.headers = (self.headers or []) + [entry.title]
        return self.press_succeeds

    def close_columns_menu(self) -> bool:
        self.menu_closed_by_cancel = True
        self.menu_open = False
        return True


class FakeHost(HostApplication):
    def __init__(self):
        self.frontmost = False
        self.can_come_to_front = True
        self.list_view = True
        self.list_view_reachable = True
        self.browser_focused = True
        self.playing = False
        self.calls: List[str] = []

    def activate(self) -> bool:
        self.calls.append("activate")
        if self.can_come_to_front:
            self.frontmost = True
        return self.can_come_to_front

    def is_frontmost(self) -> bool:
        return self.frontmost

    def show_list_view(self) -> bool:
        self.calls.append("show_list_view")
        if self.list_view_reachable:
            self.list_view = True
        return self.list_view_reachable

    def is_list_view(self) -> bool:
        return self.list_view

    def is_browser_focused(self) -> bool:
        return self.browser_focused

    def focus_browser(self) -> bool:
        self.calls.append("focus_browser")
        self.browser_focused = True
        return True

    def open_project(self) -> bool:
        self.calls.append("open_project")
        return True

    def is_playing(self) -> bool:
        return self.playing

    def play(self) -> bool:
        self.calls.append("play")
        self.playing = True
        return True


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Record readiness sleeps instead of sleeping."""
    sleeps: List[float] = []
    monkeypatch.setattr(readiness.time, "sleep", sleeps.append)
    return sleeps


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def state() -> SearchState:
    return SearchState(PreferencesStore())


@pytest.fixture
def make_engine(host, state):
    """Builds a SearchEngine around a FakeTree."""

    def _make(tree: FakeTree, labels=None) -> SearchEngine:
        registry = ColumnRegistry(tree, labels)
        visibility = ColumnVisibilityManager(registry, host, frontmost_policy=FAST, menu_policy=FAST)
        return SearchEngine(
            state, tree, host,
            registry=registry,
            visibility=visibility,
            actuator=ResultActuator(host, tree),
            list_view_policy=FAST,
        )
    return _make


# --- fake accessibility tree ---

AX_ERROR_NO_VALUE = -25212


class FakeElement:
    """Stands in for an AXUIElementRef; attributes are plain dict entries."""

    def __init__(self, role, children=(), **attrs):
        self.attrs = {"AXRole": role, "AXChildren": list(children), **attrs}
        self.actions: List[str] = []
        self.on_action = {}
        for child in children:
            child.attrs["AXParent"] = self

    def __repr__(self):
        return f"FakeElement({self.attrs.get('AXRole')!r}, title={self.attrs.get('AXTitle')!r})"


@pytest.fixture
def fake_ax(monkeypatch):
    """Routes the ax_elements helpers to FakeElement attributes."""
    import ax_elements

    def copy_value(element, attribute, _out):
        if attribute in element.attrs:
            return 0, element.attrs[attribute]
        return AX_ERROR_NO_VALUE, None

    def set_value(element, attribute, value):
        element.attrs[attribute] = value
        return 0

    def perform(element, action):
        element.actions.append(action)
        callback = element.on_action.get(action)
        if callback is not None:
            callback()
        return 0

    monkeypatch.setattr(ax_elements, "AXUIElementCopyAttributeValue", copy_value)
    monkeypatch.setattr(ax_elements, "AXUIElementSetAttributeValue", set_value)
    monkeypatch.setattr(ax_elements, "AXUIElementPerformAction", perform)
    return FakeElement
