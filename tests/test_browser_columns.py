import pytest

from ax_elements import MenuEntry
from browser_columns import ColumnKey, ColumnRegistry, ColumnVisibilityManager
from conftest import FAST, FakeTree
from search_errors import FailureReason, VisibilityError


@pytest.fixture
def tree():
    return FakeTree(headers=["Name", "Start"], menu_titles=["Name", "Start", "End", "Notes"])


@pytest.fixture
def manager(tree, host):
    return ColumnVisibilityManager(ColumnRegistry(tree), host, frontmost_policy=FAST, menu_policy=FAST)


class TestColumnKey:
    def test_parse(self):
        assert ColumnKey.parse("Notes") is ColumnKey.NOTES
        assert ColumnKey.parse(ColumnKey.REEL) is ColumnKey.REEL
        assert ColumnKey.parse(None) is ColumnKey.ALL
        assert ColumnKey.parse("bogus") is ColumnKey.ALL

    def test_catalogue_includes_all_browser_columns(self):
        assert len(ColumnKey) == 26
        assert ColumnKey("Shot/Take") is ColumnKey.SHOT_TAKE


class TestColumnRegistry:
    def test_display_label_uses_localised_table(self, tree):
        registry = ColumnRegistry(tree, {"Notes": "Notizen"})
        assert registry.display_label(ColumnKey.NOTES) == "Notizen"
        assert registry.display_label(ColumnKey.NAME) == "Name"

    def test_active_columns(self, tree):
        assert ColumnRegistry(tree).active_columns() == {"Name", "Start"}

    def test_active_columns_without_header_group(self):
        assert ColumnRegistry(FakeTree(headers=None)).active_columns() == set()

    def test_resolve_index_is_one_based(self, tree):
        registry = ColumnRegistry(tree)
        assert registry.resolve_index(ColumnKey.START, ["Name", "Start"]) == 2
        assert registry.resolve_index(ColumnKey.NOTES, ["Name", "Start"]) is None
        assert registry.resolve_index(ColumnKey.NAME, None) is None

    def test_options_sorted_by_key(self, tree):
        keys = [key for key, _label in ColumnRegistry(tree).options()]
        assert keys == sorted(keys)
        assert "All" in keys


class TestColumnVisibilityManager:
    def test_visible_column_needs_nothing(self, manager, tree, host):
        manager.ensure_visible(ColumnKey.START)
        assert host.calls == []
        assert tree.pressed == []

    def test_all_is_always_visible(self, manager, host):
        manager.ensure_visible(ColumnKey.ALL)
        assert host.calls == []

    def test_shows_hidden_column(self, manager, tree, host):
        manager.ensure_visible(ColumnKey.NOTES)
        assert host.frontmost
        assert tree.pressed == ["Notes"]
        assert "Notes" in tree.headers
        assert not tree.menu_open

    def test_app_not_frontmost(self, manager, host):
        host.can_come_to_front = False
        with pytest.raises(VisibilityError) as excinfo:
            manager.ensure_visible(ColumnKey.NOTES)
        assert excinfo.value.reason is FailureReason.APP_NOT_FRONTMOST

    def test_menu_does_not_open(self, manager, tree):
        tree.menu_opens = False
        with pytest.raises(VisibilityError) as excinfo:
            manager.ensure_visible(ColumnKey.NOTES)
        assert excinfo.value.reason is FailureReason.MENU_OPEN_FAILED

    def test_menu_unreadable(self, manager, tree):
        tree.menu_readable = False
        with pytest.raises(VisibilityError) as excinfo:
            manager.ensure_visible(ColumnKey.NOTES)
        assert excinfo.value.reason is FailureReason.MENU_UNAVAILABLE

    def test_menu_stays_open(self, manager, tree):
        tree.menu_closes_on_press = False
        with pytest.raises(VisibilityError) as excinfo:
            manager.ensure_visible(ColumnKey.NOTES)
        assert excinfo.value.reason is FailureReason.MENU_CLOSE_FAILED

    def test_press_fails(self, manager, tree):
        tree.press_succeeds = False
        with pytest.raises(VisibilityError) as excinfo:
            manager.ensure_visible(ColumnKey.NOTES)
        assert excinfo.value.reason is FailureReason.COLUMN_NOT_SHOWN

    def test_column_not_in_menu_closes_menu(self, manager, tree):
        with pytest.raises(VisibilityError) as excinfo:
            manager.ensure_visible(ColumnKey.REEL)
        assert excinfo.value.reason is FailureReason.COLUMN_NOT_FOUND
        assert tree.menu_closed_by_cancel
        assert not tree.menu_open

    def test_ticked_entry_is_not_pressed_again(self, manager, tree, monkeypatch):
        # the menu reports Notes as shown although no header carries its label yet
        monkeypatch.setattr(tree, "columns_menu_entries",
                            lambda: [MenuEntry("End"), MenuEntry("Notes", checked=True)])
        manager.ensure_visible(ColumnKey.NOTES)
        assert tree.pressed == []
        assert tree.menu_closed_by_cancel
        assert not tree.menu_open
