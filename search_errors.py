"""
Failure reasons reported by the search panel and their operator messages.
"""
from enum import Enum
from typing import Dict, Tuple


class FailureReason(str, Enum):
    # validation
    EMPTY_QUERY = "EmptyQuery"
    # readiness
    APP_NOT_FRONTMOST = "AppNotFrontmost"
    LIST_VIEW_UNAVAILABLE = "ListViewUnavailable"
    MENU_OPEN_FAILED = "MenuOpenFailed"
    MENU_UNAVAILABLE = "MenuUnavailable"
    MENU_CLOSE_FAILED = "MenuCloseFailed"
    COLUMN_NOT_FOUND = "ColumnNotFound"
    COLUMN_NOT_SHOWN = "ColumnNotShown"


class VisibilityError(Exception):
    """Raised when a browser column could not be made visible."""

    def __init__(self, reason: FailureReason, message: str = ""):
        self.reason = reason
        super().__init__(message or reason.value)


_NOT_SHOWN_TITLE = "Selected Column Not Shown"

# reason -> (title, message)
MESSAGES: Dict[FailureReason, Tuple[str, str]] = {
    FailureReason.EMPTY_QUERY: (
        "Invalid Search Field",
        "Please enter a valid search value.",
    ),
    FailureReason.APP_NOT_FRONTMOST: (
        _NOT_SHOWN_TITLE,
        "The host application could not be brought to the front.",
    ),
    FailureReason.LIST_VIEW_UNAVAILABLE: (
        _NOT_SHOWN_TITLE,
        "The browser could not be switched to list view.",
    ),
    FailureReason.MENU_OPEN_FAILED: (
        _NOT_SHOWN_TITLE,
        "The browser column menu could not be opened.",
    ),
    FailureReason.MENU_UNAVAILABLE: (
        _NOT_SHOWN_TITLE,
        "The browser column menu could not be read.",
    ),
    FailureReason.MENU_CLOSE_FAILED: (
        _NOT_SHOWN_TITLE,
        "The browser column menu did not close after selecting the column.",
    ),
    FailureReason.COLUMN_NOT_FOUND: (
        _NOT_SHOWN_TITLE,
        "The selected column is not listed in the browser column menu.",
    ),
    FailureReason.COLUMN_NOT_SHOWN: (
        _NOT_SHOWN_TITLE,
        "The selected column could not be displayed in the browser.",
    ),
}

NO_MATCH_MESSAGE = ("No Matches Found", "No matches were found for the search value.")
