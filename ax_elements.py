"""
Accessibility access to the browser list of the host application.

Wraps the handful of ``ApplicationServices`` calls the search panel needs and
converts the browser outline into plain node values (``Row`` and the cell
variants) so the search algorithm never touches an AXUIElementRef directly.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

# macOS specific accessibility functions
try:
    from ApplicationServices import (
        AXUIElementCreateApplication,
        AXUIElementCopyAttributeValue,
        AXUIElementSetAttributeValue,
        AXUIElementPerformAction,
        kAXChildrenAttribute,
        kAXTitleAttribute,
        kAXValueAttribute,
        kAXRoleAttribute,
        kAXSubroleAttribute,
        kAXDescriptionAttribute,
        AXIsProcessTrusted,
    )
    kAXErrorSuccess = 0 # ax_error.h defines this as 0
    _HAS_AX = True
except ImportError:
    # Non-macOS development: attribute reads return None, writes fail.
    _HAS_AX = False
    AXUIElementCreateApplication = None # type: ignore
    AXUIElementCopyAttributeValue = None # type: ignore
    AXUIElementSetAttributeValue = None # type: ignore
    AXUIElementPerformAction = None # type: ignore
    kAXChildrenAttribute = "AXChildren" # type: ignore
    kAXTitleAttribute = "AXTitle" # type: ignore
    kAXValueAttribute = "AXValue" # type: ignore
    kAXRoleAttribute = "AXRole" # type: ignore
    kAXSubroleAttribute = "AXSubrole" # type: ignore
    kAXDescriptionAttribute = "AXDescription" # type: ignore
    AXIsProcessTrusted = lambda: False # type: ignore
    kAXErrorSuccess = 0 # type: ignore

# Not exported as constants by pyobjc, use the raw strings
_kAXDisclosureLevelAttribute = "AXDisclosureLevel"
_kAXDisclosingAttribute = "AXDisclosing"
_kAXSelectedRowsAttribute = "AXSelectedRows"
_kAXScrollToVisibleAction = "AXScrollToVisible"
_kAXPressAction = "AXPress"
_kAXShowMenuAction = "AXShowMenu"
_kAXCancelAction = "AXCancel"
_kAXMenuItemMarkCharAttribute = "AXMenuItemMarkChar"

ROW_ROLE = "AXRow"
IMAGE_ROLE = "AXImage"
MENU_BUTTON_ROLE = "AXMenuButton"

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Low level helpers
# ---------------------------------------------------------------------------

def ax_get(element: Any, attr: str) -> Any:
    """Synchronously read a single AX attribute. Returns None on failure."""
    if element is None or AXUIElementCopyAttributeValue is None:
        return None
    try:
        err, value = AXUIElementCopyAttributeValue(element, attr, None)
        return value if err == kAXErrorSuccess else None
    except Exception as e:
        logger.debug(f"ax_get({attr}) failed: {e}")
        return None


def ax_set(element: Any, attr: str, value: Any) -> bool:
    """Write a single AX attribute. Returns True on success."""
    if element is None or AXUIElementSetAttributeValue is None:
        return False
    try:
        return AXUIElementSetAttributeValue(element, attr, value) == kAXErrorSuccess
    except Exception as e:
        logger.debug(f"ax_set({attr}) failed: {e}")
        return False


def ax_perform(element: Any, action: str) -> bool:
    """Perform an AX action (e.g. AXPress). Returns True on success."""
    if element is None or AXUIElementPerformAction is None:
        return False
    try:
        return AXUIElementPerformAction(element, action) == kAXErrorSuccess
    except Exception as e:
        logger.debug(f"ax_perform({action}) failed: {e}")
        return False


def ax_press(element: Any) -> bool:
    return ax_perform(element, _kAXPressAction)


def children_with_role(element: Any, role: str) -> List[Any]:
    children = ax_get(element, kAXChildrenAttribute) or []
    return [child for child in children if ax_get(child, kAXRoleAttribute) == role]


def child_with_role(element: Any, role: str) -> Optional[Any]:
    matches = children_with_role(element, role)
    return matches[0] if matches else None


def child_with_title(element: Any, title: str) -> Optional[Any]:
    for child in ax_get(element, kAXChildrenAttribute) or []:
        if ax_get(child, kAXTitleAttribute) == title:
            return child
    return None


def application_element(pid: int) -> Optional[Any]:
    """The AX root element for a running process."""
    if AXUIElementCreateApplication is None:
        return None
    return AXUIElementCreateApplication(pid)


def accessibility_trusted() -> bool:
    """True when this process has been granted accessibility permissions."""
    return bool(AXIsProcessTrusted())


# ---------------------------------------------------------------------------
# Node values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextCell:
    """A cell whose content is a text field; the text lives in AXValue."""
    value: Optional[str]

    @property
    def text(self) -> Optional[str]:
        return self.value


@dataclass(frozen=True)
class MenuButtonCell:
    """A cell whose content is a pop-up button; the text lives in AXTitle."""
    title: Optional[str]

    @property
    def text(self) -> Optional[str]:
        return self.title


@dataclass(frozen=True)
class ImageCell:
    """A cell led by an icon (e.g. the Name column), followed by its field."""
    description: Optional[str]
    content: Optional[Union[TextCell, MenuButtonCell]] = None

    @property
    def text(self) -> Optional[str]:
        return self.content.text if self.content else None

    def has_marker(self, marker: str) -> bool:
        return bool(marker) and self.description == marker


Cell = Union[ImageCell, TextCell, MenuButtonCell]


@dataclass(frozen=True)
class Row:
    """
    One child of the browser outline.

    ``index`` is the 1-based position inside the snapshot it was read from and
    is meaningless against any other snapshot.
    """
    index: int
    role: Optional[str]
    cells: Tuple[Optional[Cell], ...] = ()
    disclosure_level: int = 0
    disclosing: bool = False
    ref: Any = field(default=None, compare=False, repr=False)

    @property
    def is_row(self) -> bool:
        return self.role == ROW_ROLE

    def cell(self, column_index: int) -> Optional[Cell]:
        """The cell at a 1-based column index, or None if out of range."""
        if 1 <= column_index <= len(self.cells):
            return self.cells[column_index - 1]
        return None


@dataclass(frozen=True)
class TreeSnapshot:
    """A point-in-time read of the browser outline."""
    rows: Tuple[Row, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    def row(self, index: int) -> Optional[Row]:
        """The row at a 1-based index, or None if out of range."""
        if 1 <= index <= len(self.rows):
            return self.rows[index - 1]
        return None


# ---------------------------------------------------------------------------
# Tree sources
# ---------------------------------------------------------------------------

class TreeSource:
    """
    Interface to the live browser list.

    Every method reads the external tree afresh. Implementations never cache
    between calls because the user may scroll, edit or re-sort at any time.
    """

    def snapshot(self) -> TreeSnapshot:
        raise NotImplementedError

    def column_headers(self) -> Optional[List[str]]:
        """Titles of the visible column header buttons, in display order.

        Returns None when the header group cannot be found at all.
        """
        raise NotImplementedError

    def expand_row(self, row: Row) -> bool:
        raise NotImplementedError

    def select_row(self, row: Row) -> bool:
        raise NotImplementedError

    def reveal_row(self, row: Row) -> bool:
        raise NotImplementedError

    # column menu (opened from the header row)

    def show_columns_menu(self) -> bool:
        raise NotImplementedError

    def is_columns_menu_showing(self) -> bool:
        raise NotImplementedError

    def columns_menu_entries(self) -> Optional[List["MenuEntry"]]:
        """Entries of the open column menu, or None if it cannot be read."""
        raise NotImplementedError

    def press_menu_entry(self, entry: "MenuEntry") -> bool:
        raise NotImplementedError

    def close_columns_menu(self) -> bool:
        raise NotImplementedError


def _read_field(element: Any) -> Optional[Union[TextCell, MenuButtonCell]]:
    if element is None:
        return None
    if ax_get(element, kAXRoleAttribute) == MENU_BUTTON_ROLE:
        title = ax_get(element, kAXTitleAttribute)
        return MenuButtonCell(str(title) if title is not None else None)
    value = ax_get(element, kAXValueAttribute)
    return TextCell(str(value) if value is not None else None)


def read_cell(cell_element: Any) -> Optional[Cell]:
    """Convert an AXCell into one of the cell variants."""
    parts = ax_get(cell_element, kAXChildrenAttribute) or []
    if not parts:
        return None
    first = parts[0]
    if ax_get(first, kAXRoleAttribute) == IMAGE_ROLE:
        description = ax_get(first, kAXDescriptionAttribute)
        return ImageCell(
            description=str(description) if description is not None else None,
            content=_read_field(parts[1]) if len(parts) > 1 else None,
        )
    return _read_field(first)


def read_row(index: int, element: Any) -> Row:
    role = ax_get(element, kAXRoleAttribute)
    if role != ROW_ROLE:
        return Row(index=index, role=role, ref=element)
    cells = tuple(read_cell(c) for c in ax_get(element, kAXChildrenAttribute) or [])
    level = ax_get(element, _kAXDisclosureLevelAttribute)
    return Row(
        index=index,
        role=role,
        cells=cells,
        disclosure_level=int(level) if level is not None else 0,
        disclosing=bool(ax_get(element, _kAXDisclosingAttribute)),
        ref=element,
    )


@dataclass(frozen=True)
class MenuEntry:
    """An entry of the browser column menu."""
    title: str
    checked: bool = False
    ref: Any = field(default=None, compare=False, repr=False)


class AXBrowserTree(TreeSource):
    """
    ``TreeSource`` backed by the host application's browser list.

    Args:
        list_provider: returns either the browser AXOutline itself or the
            element holding its AXScrollArea, or None if it is not showing.
    """

    def __init__(self, list_provider: Callable[[], Any], logger: Optional[logging.Logger] = None):
        self._list_provider = list_provider
        self.logger = logger or logging.getLogger(__name__)

    def outline(self) -> Optional[Any]:
        list_ui = self._list_provider()
        if list_ui is None:
            return None
        if ax_get(list_ui, kAXRoleAttribute) == "AXOutline":
            return list_ui
        scroll_area = child_with_role(list_ui, "AXScrollArea")
        return scroll_area and child_with_role(scroll_area, "AXOutline")

    def _header_group(self) -> Optional[Any]:
        outline = self.outline()
        return outline and child_with_role(outline, "AXGroup")

    def _columns_menu(self) -> Optional[Any]:
        group = self._header_group()
        return group and child_with_role(group, "AXMenu")

    def snapshot(self) -> TreeSnapshot:
        outline = self.outline()
        if not outline:
            self.logger.debug("Browser outline not found; returning empty snapshot.")
            return TreeSnapshot()
        children = ax_get(outline, kAXChildrenAttribute) or []
        return TreeSnapshot(tuple(read_row(i, child) for i, child in enumerate(children, start=1)))

    def column_headers(self) -> Optional[List[str]]:
        group = self._header_group()
        if not group:
            return None
        return [str(ax_get(b, kAXTitleAttribute) or "") for b in children_with_role(group, "AXButton")]

    def expand_row(self, row: Row) -> bool:
        return ax_set(row.ref, _kAXDisclosingAttribute, True)

    def select_row(self, row: Row) -> bool:
        outline = self.outline()
        if outline is None or row.ref is None:
            return False
        return ax_set(outline, _kAXSelectedRowsAttribute, [row.ref])

    def reveal_row(self, row: Row) -> bool:
        return ax_perform(row.ref, _kAXScrollToVisibleAction)

    def show_columns_menu(self) -> bool:
        return ax_perform(self._header_group(), _kAXShowMenuAction)

    def is_columns_menu_showing(self) -> bool:
        return self._columns_menu() is not None

    def columns_menu_entries(self) -> Optional[List[MenuEntry]]:
        menu = self._columns_menu()
        if menu is None:
            return None
        items = ax_get(menu, kAXChildrenAttribute)
        if items is None:
            return None
        return [
            MenuEntry(
                title=str(ax_get(item, kAXTitleAttribute) or ""),
                checked=bool(ax_get(item, _kAXMenuItemMarkCharAttribute)),
                ref=item,
            )
            for item in items
        ]

    def press_menu_entry(self, entry: MenuEntry) -> bool:
        return ax_press(entry.ref)

    def close_columns_menu(self) -> bool:
        return ax_perform(self._columns_menu(), _kAXCancelAction)


def cell_text(cell: Optional[Cell]) -> Optional[str]:
    return cell.text if cell is not None else None


def describe_cells(cells: Sequence[Optional[Cell]]) -> str:
    """Short debug description of a row's cell texts."""
    return " | ".join(cell_text(c) or "" for c in cells)
