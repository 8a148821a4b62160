from types import SimpleNamespace

import psutil
import pytest

from ax_elements import Row
from conftest import FakeElement, FakeTree, make_row
from host_app import MacHostApplication, ResultActuator, find_element_by_steps

BROWSER_RULES = [
    {"role": "AXWindow", "subrole": "AXStandardWindow"},
    {"role": "AXOutline", "search_scope": {"levels_deep": 12}, "index": 0},
]


def app_tree():
    """Application > window > split group > scroll area > outline > row."""
    row = FakeElement("AXRow", [FakeElement("AXCell")])
    outline = FakeElement("AXOutline", [FakeElement("AXGroup"), row])
    scroll = FakeElement("AXScrollArea", [outline])
    window = FakeElement("AXWindow", [FakeElement("AXSplitGroup", [scroll])],
                         AXSubrole="AXStandardWindow", AXTitle="Final Cut Pro")
    floating = FakeElement("AXWindow", [FakeElement("AXOutline")], AXSubrole="AXFloatingWindow")
    app = FakeElement("AXApplication", [floating, window])
    return app, window, outline, row


def menu_bar(*menus):
    """``menus`` are ``(title, [item titles])`` pairs."""
    bar_items = []
    for title, items in menus:
        menu = FakeElement("AXMenu", [FakeElement("AXMenuItem", AXTitle=t) for t in items])
        bar_items.append(FakeElement("AXMenuBarItem", [menu], AXTitle=title))
    return FakeElement("AXMenuBar", bar_items)


@pytest.fixture
def mac_host(fake_ax, monkeypatch):
    app, window, outline, row = app_tree()
    host = MacHostApplication({"rules_to_find_browser_list": BROWSER_RULES,
                               "traversal_roles_to_skip": ["AXRow"]})
    monkeypatch.setattr(host, "_app_element", lambda: app)
    return SimpleNamespace(host=host, app=app, window=window, outline=outline, row=row)


class TestRulePaths:
    def test_finds_outline(self, fake_ax):
        app, _, outline, _ = app_tree()
        assert find_element_by_steps(app, BROWSER_RULES) is outline

    def test_criteria_must_all_match(self, fake_ax):
        app, _, _, _ = app_tree()
        steps = [{"role": "AXWindow", "subrole": "AXSheet"}]
        assert find_element_by_steps(app, steps) is None

    def test_default_scope_is_direct_children(self, fake_ax):
        app, _, _, _ = app_tree()
        assert find_element_by_steps(app, [{"role": "AXScrollArea"}]) is None
        found = find_element_by_steps(app, [{"role": "AXScrollArea", "search_scope": {"levels_deep": 3}}])
        assert found.attrs["AXRole"] == "AXScrollArea"

    def test_index_out_of_bounds(self, fake_ax):
        app, _, _, _ = app_tree()
        assert find_element_by_steps(app, [{"role": "AXWindow", "index": 5}]) is None

    def test_title_contains_is_case_insensitive(self, fake_ax):
        app, window, _, _ = app_tree()
        assert find_element_by_steps(app, [{"title_contains": "final cut"}]) is window

    def test_title_matches_one_of(self, fake_ax):
        app, window, _, _ = app_tree()
        assert find_element_by_steps(app, [{"title_matches_one_of": ["Motion", "Final Cut"]}]) is window

    def test_skipped_roles_are_not_descended(self, fake_ax):
        app, _, _, _ = app_tree()
        steps = [{"role": "AXCell", "search_scope": {"levels_deep": 12}}]
        assert find_element_by_steps(app, steps) is not None
        assert find_element_by_steps(app, steps, roles_to_skip=["AXRow"]) is None


class TestMacHost:
    def test_browser_list(self, mac_host):
        assert mac_host.host.browser_list() is mac_host.outline
        assert mac_host.host.is_list_view()

    def test_no_rules_means_no_list(self, fake_ax):
        host = MacHostApplication({})
        assert host.browser_list() is None

    def test_browser_focus_follows_parents(self, mac_host):
        mac_host.app.attrs["AXFocusedUIElement"] = mac_host.row
        assert mac_host.host.is_browser_focused()
        mac_host.app.attrs["AXFocusedUIElement"] = mac_host.window
        assert not mac_host.host.is_browser_focused()

    def test_select_menu_presses_leaf(self, mac_host):
        mac_host.app.attrs["AXMenuBar"] = menu_bar(("File", ["New"]), ("Clip", ["Open Clip", "Solo"]))
        assert mac_host.host.open_project()
        clip_menu = mac_host.app.attrs["AXMenuBar"].attrs["AXChildren"][1].attrs["AXChildren"][0]
        open_clip, solo = clip_menu.attrs["AXChildren"]
        assert open_clip.actions == ["AXPress"]
        assert solo.actions == []

    def test_missing_menu_item(self, mac_host, caplog):
        mac_host.app.attrs["AXMenuBar"] = menu_bar(("View", ["Playback"]))
        assert mac_host.host.select_menu(["View", "Browser", "as List"]) is False
        assert "View > Browser" in caplog.text

    def test_configured_menus_override_defaults(self, fake_ax):
        host = MacHostApplication({"menus": {"play": ["Playback", "Play"]}})
        assert host.menus["play"] == ["Playback", "Play"]
        assert host.menus["list_view"] == ["View", "Browser", "as List"]

    def test_playing_indicator(self, mac_host):
        assert mac_host.host.is_playing() is False
        mac_host.host.app_config["rules_to_find_playing_indicator"] = [
            {"role": "AXButton", "description": "Pause", "search_scope": {"levels_deep": 12}},
        ]
        assert mac_host.host.is_playing() is False
        mac_host.window.attrs["AXChildren"].append(FakeElement("AXButton", AXDescription="Pause"))
        assert mac_host.host.is_playing() is True

    def test_running_pids(self, fake_ax, monkeypatch):
        procs = [
            SimpleNamespace(info={"pid": 10, "name": "Final Cut Pro", "exe": None}),
            SimpleNamespace(info={"pid": 11, "name": "Finder", "exe": None}),
        ]
        monkeypatch.setattr(psutil, "process_iter", lambda attrs: iter(procs))
        host = MacHostApplication({"app_names": "final cut pro"})
        assert host.running_pids() == [10]

    def test_activate_without_bundle_id(self, fake_ax, monkeypatch):
        host = MacHostApplication({})
        monkeypatch.setattr(host, "_pid", lambda: None)
        assert host.activate() is False


class TestResultActuator:
    def test_select_and_reveal(self, host):
        tree = FakeTree(rows=[make_row("a"), make_row("b")])
        row = tree.snapshot().row(2)
        host.browser_focused = False
        ResultActuator(host, tree).actuate(row)
        assert host.calls == ["activate", "focus_browser"]
        assert tree.selected == [2]
        assert tree.revealed == [2]

    def test_open_and_play(self, host):
        tree = FakeTree(rows=[make_row("a")])
        ResultActuator(host, tree).actuate(tree.snapshot().row(1), open_project=True, play=True)
        assert host.calls == ["activate", "open_project", "play"]

    def test_does_not_toggle_playback_off(self, host):
        tree = FakeTree(rows=[make_row("a")])
        host.playing = True
        ResultActuator(host, tree).actuate(tree.snapshot().row(1), play=True)
        assert "play" not in host.calls

    def test_selection_failure_is_logged(self, host, caplog):
        tree = FakeTree(rows=[make_row("a")])
        tree.select_row = lambda row: False
        ResultActuator(host, tree).actuate(Row(index=1, role="AXRow"))
        assert "Could not select row 1" in caplog.text
        assert tree.revealed == [1]
