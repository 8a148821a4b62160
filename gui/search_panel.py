"""
The floating search panel window.
"""
import sys
from typing import Any, Dict, List, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QCursor
from PyQt6.QtWidgets import (
    QApplication, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QLineEdit, QComboBox, QPushButton, QCheckBox, QMenu, QMessageBox, QLabel,
)

from ax_elements import accessibility_trusted
from browser_columns import ColumnRegistry, ColumnVisibilityManager
from browser_search import DEFAULT_PROJECT_MARKER, SearchEngine
from gui.constants import (
    APP_NAME, APP_VERSION, PREFS_PATH, load_config, logger, polling_policy, setup_logging,
)
from host_app import MacHostApplication, ResultActuator
from panel_controller import HistoryMenuItem, PanelView, SearchPanelController
from search_state import PreferencesStore, SearchState

FLAG_BOXES = [
    ("matchCase", "Match Case"),
    ("playAfterFind", "Play After Find"),
    ("loopSearch", "Loop Search"),
    ("openProject", "Open Project on Match"),
]


def build_engine(config: Dict[str, Any], state: SearchState) -> SearchEngine:
    """Wire the search engine to the live host application described by ``config``."""
    host = MacHostApplication(config.get("host_app", {}), logger=logger)
    registry = ColumnRegistry(host.tree, config.get("column_labels", {}))
    visibility = ColumnVisibilityManager(
        registry, host,
        frontmost_policy=polling_policy(config, "frontmost"),
        menu_policy=polling_policy(config, "menu"),
        logger=logger,
    )
    return SearchEngine(
        state, host.tree, host,
        registry=registry,
        visibility=visibility,
        actuator=ResultActuator(host, host.tree, logger=logger),
        list_view_policy=polling_policy(config, "default"),
        project_marker=config.get("project_marker_description", DEFAULT_PROJECT_MARKER),
        logger=logger,
    )


class SearchPanel(QWidget, PanelView):
    """Search field, column chooser, option check boxes and navigation buttons."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.controller: Optional[SearchPanelController] = None
        self.setWindowTitle(f"{APP_NAME} {APP_VERSION}")
        self.setWindowFlags(self.windowFlags() | Qt.WindowType.WindowStaysOnTopHint)
        self.setMinimumWidth(420)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        search_row = QHBoxLayout()
        self.search_field = QLineEdit()
        self.search_field.setPlaceholderText("Search the browser…")
        self.search_field.returnPressed.connect(lambda: self._send("find"))
        self.search_field.textEdited.connect(lambda text: self._send_event({"type": "update", "value": text}))
        search_row.addWidget(self.search_field, 1)
        self.history_btn = QPushButton("History")
        self.history_btn.clicked.connect(lambda: self._send_event({"type": "history"}))
        search_row.addWidget(self.history_btn)
        layout.addLayout(search_row)

        column_row = QHBoxLayout()
        column_row.addWidget(QLabel("Column:"))
        self.column_combo = QComboBox()
        self.column_combo.activated.connect(self._on_column_changed)
        column_row.addWidget(self.column_combo, 1)
        layout.addLayout(column_row)

        flags = QGridLayout()
        self.flag_boxes: Dict[str, QCheckBox] = {}
        for i, (event_type, label) in enumerate(FLAG_BOXES):
            box = QCheckBox(label)
            box.toggled.connect(lambda checked, t=event_type: self._send_event({"type": t, t: checked}))
            flags.addWidget(box, i // 2, i % 2)
            self.flag_boxes[event_type] = box
        layout.addLayout(flags)

        buttons = QHBoxLayout()
        for text, event_type in (("Clear", "clear"), ("Previous", "findPrevious"),
                                 ("Next", "findNext"), ("Find", "find")):
            btn = QPushButton(text)
            btn.clicked.connect(lambda _checked=False, t=event_type: self._send(t))
            buttons.addWidget(btn)
        layout.addLayout(buttons)

    def attach(self, controller: SearchPanelController):
        self.controller = controller
        self.column_combo.clear()
        for key, label, selected in controller.column_options():
            self.column_combo.addItem(label, key)
            if selected:
                self.column_combo.setCurrentIndex(self.column_combo.count() - 1)
        controller.update_info()

    # --- events to the controller ---

    def _send_event(self, event: Dict[str, Any]):
        if self.controller is None:
            return
        self.controller.handle(event)

    def _send(self, event_type: str):
        self._send_event({
            "type": event_type,
            "value": self.search_field.text(),
            "column": self.column_combo.currentData(),
        })

    def _on_column_changed(self, index: int):
        self._send_event({"type": "update", "column": self.column_combo.itemData(index)})

    # --- PanelView ---

    def render_state(self, state: Dict[str, Any]):
        query = state.get("query", "")
        # keeps the cursor in place while the user is typing
        if self.search_field.text() != query:
            self.search_field.setText(query)
        for event_type, box in self.flag_boxes.items():
            box.blockSignals(True)
            box.setChecked(bool(state.get(event_type)))
            box.blockSignals(False)
        self.search_field.setFocus()

    def set_query(self, text: str):
        self.search_field.setText(text)
        self.search_field.setFocus()

    def show_alert(self, title: str, message: str):
        QMessageBox.information(self, title, message)

    def show_history(self, items: List[HistoryMenuItem]):
        menu = QMenu(self)
        for item in items:
            if item.separator:
                menu.addSeparator()
                continue
            action = menu.addAction(item.title)
            action.setEnabled(item.enabled)
            if item.action is not None:
                action.triggered.connect(lambda _checked=False, fn=item.action: fn())
        menu.exec(QCursor.pos())


def main():
    """Application entry point."""
    if sys.platform != "darwin":
        print("This application only runs on macOS.")
        sys.exit(1)

    config = load_config()
    setup_logging(config)

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)

    logger.info(f"Application starting (version {APP_VERSION})")
    if not accessibility_trusted():
        logger.warning("Accessibility permissions are not enabled; searches will fail until they are granted.")

    state = SearchState(PreferencesStore(PREFS_PATH, logger=logger))
    panel = SearchPanel()
    panel.attach(SearchPanelController(build_engine(config, state), panel, logger=logger))
    panel.show()

    exit_code = app.exec()
    logger.info(f"Application exiting (code {exit_code})")
    sys.exit(exit_code)
