"""
The host application (the video editor whose browser is searched).

``HostApplication`` is the narrow interface the search engine talks to;
``MacHostApplication`` implements it with psutil for process lookup, AppKit
for activation and the accessibility API for menus and the browser list.
``ResultActuator`` performs what happens once a row has matched.
"""
import collections
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

import psutil

from ax_elements import (
    AXBrowserTree, Row, TreeSource,
    application_element, ax_get, ax_press, child_with_role, child_with_title,
    kAXChildrenAttribute, kAXDescriptionAttribute, kAXRoleAttribute,
    kAXSubroleAttribute, kAXTitleAttribute,
)

try:
    from AppKit import (
        NSWorkspace,
        NSRunningApplication,
        NSApplicationActivateIgnoringOtherApps,
    )
    _HAS_APPKIT = True
except ImportError:
    _HAS_APPKIT = False

_kAXMenuBarAttribute = "AXMenuBar"
_kAXFocusedUIElementAttribute = "AXFocusedUIElement"
_kAXParentAttribute = "AXParent"

CONFIG_KEY_TO_AX_ATTRIBUTE_MAP = {
    "role": kAXRoleAttribute,
    "subrole": kAXSubroleAttribute,
    "title": kAXTitleAttribute,
    "title_contains": kAXTitleAttribute,
    "title_matches_one_of": kAXTitleAttribute,
    "description": kAXDescriptionAttribute,
    "description_contains": kAXDescriptionAttribute,
}

DEFAULT_MENUS = {
    "go_to_browser": ["Window", "Go To", "Libraries"],
    "list_view": ["View", "Browser", "as List"],
    "open_project": ["Clip", "Open Clip"],
    "play": ["View", "Playback", "Play"],
}

logger = logging.getLogger(__name__)


class HostApplication:
    """Interface to the host application. All methods are synchronous."""

    def activate(self) -> bool:
        """Launch the host if needed and ask for it to come to the front."""
        raise NotImplementedError

    def is_frontmost(self) -> bool:
        raise NotImplementedError

    def show_list_view(self) -> bool:
        """Ask the browser to switch to list mode."""
        raise NotImplementedError

    def is_list_view(self) -> bool:
        raise NotImplementedError

    def is_browser_focused(self) -> bool:
        raise NotImplementedError

    def focus_browser(self) -> bool:
        raise NotImplementedError

    def open_project(self) -> bool:
        raise NotImplementedError

    def is_playing(self) -> bool:
        """True if either the viewer or the event viewer is playing."""
        raise NotImplementedError

    def play(self) -> bool:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Element lookup by rule paths
# ---------------------------------------------------------------------------

def _check_ax_match(element: Any, criteria: Dict[str, Any]) -> bool:
    """Checks if an element matches all criteria of a rule step."""
    if element is None:
        return False
    for key, expected in criteria.items():
        attribute = CONFIG_KEY_TO_AX_ATTRIBUTE_MAP.get(key)
        if attribute is None:
            logger.debug(f"Unknown rule criteria key {key!r} (skipped)")
            continue
        actual = ax_get(element, attribute)
        if actual is not None and not isinstance(actual, (str, int, float, bool)):
            actual = str(actual)
        actual_str = actual if isinstance(actual, str) else ""
        if key in ("role", "subrole", "title", "description"):
            if actual != expected:
                return False
        elif key in ("title_contains", "description_contains"):
            if not (actual_str and expected.lower() in actual_str.lower()):
                return False
        elif key == "title_matches_one_of":
            if not (actual_str and isinstance(expected, list)
                    and any(opt.lower() in actual_str.lower() for opt in expected)):
                return False
    return True


def _search_descendants(start_node: Any, criteria: Dict[str, Any], levels: int,
                        roles_to_skip: Optional[Sequence[str]] = None) -> List[Any]:
    """BFS for descendants of ``start_node`` matching ``criteria``."""
    matches: List[Any] = []
    if start_node is None:
        return matches
    effective_levels = levels if levels > 0 else 50
    queue = collections.deque([(start_node, 0)])
    visited: Set[Any] = {start_node}
    while queue:
        element, depth = queue.popleft()
        if depth > 0 and _check_ax_match(element, criteria):
            matches.append(element)
        if depth < effective_levels:
            role = ax_get(element, kAXRoleAttribute)
            if role and roles_to_skip and role in roles_to_skip and depth > 0:
                continue
            for child in ax_get(element, kAXChildrenAttribute) or []:
                if child not in visited:
                    visited.add(child)
                    queue.append((child, depth + 1))
    return matches


def find_element_by_steps(root: Any, steps: List[Dict[str, Any]],
                          roles_to_skip: Optional[Sequence[str]] = None) -> Optional[Any]:
    """
    Walks rule steps from ``root`` and returns the first surviving element.

    Each step is a dict of match criteria plus optional ``search_scope``
    (``{"levels_deep": n}``, default 1) and ``index`` (pick one match).
    """
    current = [root]
    for step_idx, step in enumerate(steps, start=1):
        criteria = {k: v for k, v in step.items() if k not in ("search_scope", "index")}
        levels_deep = step.get("search_scope", {}).get("levels_deep", 1)
        index = step.get("index")
        found: List[Any] = []
        for parent in current:
            found.extend(_search_descendants(parent, criteria, levels_deep, roles_to_skip))
        if not found:
            logger.debug(f"Rule step {step_idx}: no match for {criteria} within {levels_deep} level(s).")
            return None
        if index is not None:
            if not 0 <= index < len(found):
                logger.debug(f"Rule step {step_idx}: index {index} out of bounds for {len(found)} matches.")
                return None
            current = [found[index]]
        else:
            current = found
    return current[0] if current else None


# ---------------------------------------------------------------------------
# macOS implementation
# ---------------------------------------------------------------------------

class MacHostApplication(HostApplication):
    """
    Host application driven through AppKit and the accessibility API.

    Args:
        app_config: the ``host_app`` block of the configuration. Recognised
            keys: ``bundle_id``, ``app_names``, ``command_paths``,
            ``rules_to_find_browser_list``, ``rules_to_find_playing_indicator``,
            ``traversal_roles_to_skip`` and ``menus``.
    """

    def __init__(self, app_config: Dict[str, Any], logger: Optional[logging.Logger] = None):
        self.app_config = app_config or {}
        self.bundle_id: str = self.app_config.get("bundle_id", "")
        self.menus: Dict[str, List[str]] = {**DEFAULT_MENUS, **self.app_config.get("menus", {})}
        self.logger = logger or logging.getLogger(__name__)
        self.tree = AXBrowserTree(self.browser_list, logger=self.logger)

    # --- process ---

    def running_pids(self) -> List[int]:
        """Finds PIDs of the host application based on app_config."""
        command_paths = self.app_config.get("command_paths", [])
        app_names = self.app_config.get("app_names", [])
        if isinstance(command_paths, str): command_paths = [command_paths]
        if isinstance(app_names, str): app_names = [app_names]
        lower_app_names = [name.lower() for name in app_names]
        resolved_paths = [str(Path(p).resolve()) for p in command_paths]

        pids: List[int] = []
        for proc in psutil.process_iter(['pid', 'name', 'exe']):
            try:
                info = proc.info
                name = (info['name'] or "").lower()
                exe_path = str(Path(info['exe']).resolve()) if info['exe'] else ""
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
            if exe_path and exe_path in resolved_paths:
                pids.append(info['pid'])
            elif name and any(app_name == name for app_name in lower_app_names):
                pids.append(info['pid'])
        if not pids:
            self.logger.debug(f"No running processes found for '{self.bundle_id or app_names}'.")
        return pids

    def _pid(self) -> Optional[int]:
        if _HAS_APPKIT and self.bundle_id:
            running = NSRunningApplication.runningApplicationsWithBundleIdentifier_(self.bundle_id)
            if running:
                return int(running[0].processIdentifier())
        pids = self.running_pids()
        return pids[0] if pids else None

    def _app_element(self) -> Optional[Any]:
        pid = self._pid()
        return application_element(pid) if pid is not None else None

    def activate(self) -> bool:
        pid = self._pid()
        if pid is None:
            if not self.bundle_id:
                self.logger.error("Host application is not running and no bundle_id is configured.")
                return False
            self.logger.info(f"Launching host application {self.bundle_id}.")
            result = subprocess.run(["open", "-b", self.bundle_id], capture_output=True, text=True)
            if result.returncode != 0:
                self.logger.error(f"Failed to launch {self.bundle_id}: {result.stderr.strip()}")
            return result.returncode == 0
        if not _HAS_APPKIT:
            return False
        app = NSRunningApplication.runningApplicationWithProcessIdentifier_(pid)
        return bool(app and app.activateWithOptions_(NSApplicationActivateIgnoringOtherApps))

    def is_frontmost(self) -> bool:
        if not _HAS_APPKIT:
            return False
        front = NSWorkspace.sharedWorkspace().frontmostApplication()
        return front is not None and front.processIdentifier() == self._pid()

    # --- menus ---

    def select_menu(self, path: Sequence[str]) -> bool:
        """Presses a menu bar item given its title path, e.g. ``["Clip", "Open Clip"]``."""
        app_ref = self._app_element()
        element = ax_get(app_ref, _kAXMenuBarAttribute)
        for depth, title in enumerate(path):
            if depth > 0:
                element = child_with_role(element, "AXMenu")
            element = child_with_title(element, title) if element is not None else None
            if element is None:
                self.logger.error(f"Menu item not found: {' > '.join(path[:depth + 1])}")
                return False
        pressed = ax_press(element)
        if not pressed:
            self.logger.error(f"Failed to press menu item: {' > '.join(path)}")
        return pressed

    def _menu(self, name: str) -> bool:
        return self.select_menu(self.menus[name])

    # --- browser ---

    def browser_list(self) -> Optional[Any]:
        steps = self.app_config.get("rules_to_find_browser_list", [])
        if not steps:
            self.logger.warning("No 'rules_to_find_browser_list' in host_app config.")
            return None
        return find_element_by_steps(self._app_element(), steps,
                                     self.app_config.get("traversal_roles_to_skip", []))

    def show_list_view(self) -> bool:
        return self._menu("list_view")

    def is_list_view(self) -> bool:
        return self.tree.outline() is not None

    def is_browser_focused(self) -> bool:
        outline = self.tree.outline()
        focused = ax_get(self._app_element(), _kAXFocusedUIElementAttribute)
        # the focused element is the outline or one of its rows
        for _ in range(3):
            if focused is None or outline is None:
                return False
            if focused == outline:
                return True
            focused = ax_get(focused, _kAXParentAttribute)
        return False

    def focus_browser(self) -> bool:
        return self._menu("go_to_browser")

    def open_project(self) -> bool:
        return self._menu("open_project")

    def is_playing(self) -> bool:
        steps = self.app_config.get("rules_to_find_playing_indicator", [])
        if not steps:
            return False
        return find_element_by_steps(self._app_element(), steps) is not None

    def play(self) -> bool:
        return self._menu("play")


# ---------------------------------------------------------------------------
# Acting on a match
# ---------------------------------------------------------------------------

class ResultActuator:
    """Selects and reveals a matched row, then opens or plays it as requested."""

    def __init__(self, host: HostApplication, tree: TreeSource, logger: Optional[logging.Logger] = None):
        self.host = host
        self.tree = tree
        self.logger = logger or logging.getLogger(__name__)

    def actuate(self, row: Row, open_project: bool = False, play: bool = False) -> None:
        self.host.activate()
        if not self.host.is_browser_focused():
            self.host.focus_browser()
        if not self.tree.select_row(row):
            self.logger.warning(f"Could not select row {row.index}.")
        self.tree.reveal_row(row)
        if open_project:
            self.logger.debug(f"Opening project at row {row.index}.")
            self.host.open_project()
        if play and not self.host.is_playing():
            self.host.play()
