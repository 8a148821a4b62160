"""
Browser columns: logical keys, their display labels, and making a column visible.
"""
import logging
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ax_elements import TreeSource
from readiness import WaitPolicy, wait_with_policy
from search_errors import FailureReason, VisibilityError


class ColumnKey(str, Enum):
    """Logical browser columns, independent of the host's UI language."""
    ALL = "All"
    NAME = "Name"
    START = "Start"
    END = "End"
    DURATION = "Duration"
    CONTENT_CREATED = "Content Created"
    CAMERA_ANGLE = "Camera Angle"
    NOTES = "Notes"
    VIDEO_ROLES = "Video Roles"
    AUDIO_ROLES = "Audio Roles"
    CAMERA_NAME = "Camera Name"
    REEL = "Reel"
    SCENE = "Scene"
    SHOT_TAKE = "Shot/Take"
    MEDIA_START = "Media Start"
    MEDIA_END = "Media End"
    FRAME_SIZE = "Frame Size"
    VIDEO_FRAME_RATE = "Video Frame Rate"
    AUDIO_OUTPUT_CHANNELS = "Audio Output Channels"
    AUDIO_SAMPLE_RATE = "Audio Sample Rate"
    AUDIO_CONFIGURATION = "Audio Configuration"
    FILE_TYPE = "File Type"
    DATE_IMPORTED = "Date Imported"
    CODECS = "Codecs"
    MODE_360 = "360° Mode"
    STEREOSCOPIC_MODE = "Stereoscopic Mode"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ColumnKey":
        """Column key for a stored value; unknown or empty values mean ALL."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.ALL


class ColumnRegistry:
    """
    Maps column keys to the labels the host shows and to live column positions.

    Args:
        tree: Source of the visible column headers.
        labels: Localised ``{key: label}`` table. Keys not present are shown
            under their key name.
    """

    def __init__(self, tree: TreeSource, labels: Optional[Dict[str, str]] = None):
        self.tree = tree
        self.labels = dict(labels or {})

    def display_label(self, key: ColumnKey) -> str:
        key = ColumnKey.parse(key)
        return self.labels.get(key.value) or key.value

    def options(self) -> List[Tuple[str, str]]:
        """``(key, label)`` pairs for a column chooser, sorted by key."""
        return sorted((key.value, self.display_label(key)) for key in ColumnKey)

    def header_titles(self) -> Optional[List[str]]:
        return self.tree.column_headers()

    def active_columns(self) -> Set[str]:
        return set(self.header_titles() or [])

    def resolve_index(self, key: ColumnKey, active_headers: Optional[List[str]]) -> Optional[int]:
        """1-based position of ``key``'s header among ``active_headers``."""
        if not active_headers:
            return None
        label = self.display_label(key)
        for position, title in enumerate(active_headers, start=1):
            if title == label:
                return position
        return None


class ColumnVisibilityManager:
    """Shows a hidden browser column by ticking it in the header's column menu."""

    def __init__(self, registry: ColumnRegistry, host, frontmost_policy: WaitPolicy = None,
                 menu_policy: WaitPolicy = None, logger: Optional[logging.Logger] = None):
        self.registry = registry
        self.host = host
        self.frontmost_policy = frontmost_policy or WaitPolicy(attempts=50, interval=0.1)
        self.menu_policy = menu_policy or WaitPolicy()
        self.logger = logger or logging.getLogger(__name__)

    @property
    def tree(self) -> TreeSource:
        return self.registry.tree

    def _fail(self, reason: FailureReason, message: str):
        self.logger.error(f"ensure_visible: {message}")
        raise VisibilityError(reason, message)

    def ensure_visible(self, key: ColumnKey) -> None:
        """
        Makes sure the column for ``key`` is displayed in the browser.

        Raises:
            VisibilityError: with the step that failed as its ``reason``.
        """
        key = ColumnKey.parse(key)
        if key is ColumnKey.ALL:
            return
        label = self.registry.display_label(key)
        if label in self.registry.active_columns():
            return

        self.logger.info(f"Column '{label}' is hidden; showing it via the column menu.")

        def bring_to_front():
            self.host.activate()
            return self.host.is_frontmost()

        if not wait_with_policy(bring_to_front, self.frontmost_policy, "host application frontmost"):
            self._fail(FailureReason.APP_NOT_FRONTMOST, "Failed to switch back to the host application.")

        def open_menu():
            if not self.tree.is_columns_menu_showing():
                self.tree.show_columns_menu()
            return self.tree.is_columns_menu_showing()

        if not wait_with_policy(open_menu, self.menu_policy, "column menu open"):
            self._fail(FailureReason.MENU_OPEN_FAILED, "Failed to open the column menu.")

        entries = self.tree.columns_menu_entries()
        if not entries:
            self._fail(FailureReason.MENU_UNAVAILABLE, "Could not read the column menu entries.")

        for entry in entries:
            if entry.title != label:
                continue
            if entry.checked:
                # already ticked; pressing would hide it
                self.logger.debug(f"Column '{label}' is already ticked in the column menu.")
                self.tree.close_columns_menu()
                return
            pressed = self.tree.press_menu_entry(entry)
            if not wait_with_policy(lambda: not self.tree.is_columns_menu_showing(),
                                    self.menu_policy, "column menu closed"):
                self._fail(FailureReason.MENU_CLOSE_FAILED, "Failed to close the column menu after selecting a column.")
            if not pressed:
                self._fail(FailureReason.COLUMN_NOT_SHOWN, f"Pressing column menu entry '{label}' failed.")
            self.logger.debug(f"Column '{label}' toggled on.")
            return

        self.tree.close_columns_menu()
        self._fail(FailureReason.COLUMN_NOT_FOUND, f"Column '{label}' is not in the column menu.")
