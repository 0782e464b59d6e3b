"""Event loop for the snapshot browser.

One thread does everything, in this order per iteration:
draw, poll one key, dispatch it, move the download forward by one chunk.
While a chunk transfer is pending the key poll does not wait, so a cancel
request is seen within one chunk.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from rich.console import RenderableType

from pgman.browser import terminal as keys
from pgman.browser.download import DownloadState
from pgman.browser.renderer import render
from pgman.browser.session import SnapshotBrowser
from pgman.browser.state import (
    ConfirmCancel,
    ConfirmRestore,
    ConnectionTestResult,
    Downloading,
    ErrorPopup,
    FocusField,
    InputMode,
    SuccessPopup,
)
from pgman.models import DatabaseConfig


QUIT_KEY = "q"

FOCUS_SHORTCUTS = {
    "b": FocusField.BUCKET,
    "R": FocusField.REGION,
    "x": FocusField.PREFIX,
    "E": FocusField.ENDPOINT,
    "a": FocusField.ACCESS_KEY,
    "s": FocusField.SECRET_KEY,
    "P": FocusField.PATH_STYLE,
    "h": FocusField.DB_HOST,
    "p": FocusField.DB_PORT,
    "u": FocusField.DB_USERNAME,
    "f": FocusField.DB_PASSWORD,
    "l": FocusField.DB_SSL,
    "n": FocusField.DB_NAME,
}

SELECTION_KEYS = {
    keys.UP: -1,
    "k": -1,
    keys.DOWN: 1,
    "j": 1,
}

DISMISS_KEYS = frozenset({keys.ESC, keys.ENTER})


@dataclass
class SessionResult:
    """Outcome of a browser session.

    artifact_path is None when the operator quit without completing a
    download. database carries the connection settings as last edited.
    """

    artifact_path: Optional[Path]
    database: DatabaseConfig


class BrowserController:
    """Drives a SnapshotBrowser from key tokens to rendered frames."""

    def __init__(
        self,
        session: SnapshotBrowser,
        read_key: Callable[[int], str],
        display: Callable[[RenderableType], None],
        *,
        poll_interval_ms: int = 100,
        success_hold_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            session: Browser state to drive
            read_key: Returns one key token, or "" when none arrives within
                the given milliseconds
            display: Pushes a rendered frame to the screen
            poll_interval_ms: Key wait while no chunk is pending
            success_hold_seconds: How long the completed-download popup stays up
            sleep: Used for the success hold
        """
        self.session = session
        self.read_key = read_key
        self.display = display
        self.poll_interval_ms = poll_interval_ms
        self.success_hold_seconds = success_hold_seconds
        self.sleep = sleep

    def draw(self) -> None:
        self.display(render(self.session))

    def run(self, *, initial_listing: bool = True) -> SessionResult:
        """Run until the operator quits or a download completes."""
        session = self.session
        if initial_listing:
            session.refresh(surface_validation=False)

        while True:
            self.draw()

            pumping = isinstance(session.popup, Downloading)
            key = self.read_key(0 if pumping else self.poll_interval_ms)
            if key and not self.handle_key(key):
                session.abort_download()
                return SessionResult(None, session.database)

            if isinstance(session.popup, Downloading):
                state = session.pump_download()
                if state is DownloadState.SUCCEEDED:
                    return self._finish_download()

    def _finish_download(self) -> SessionResult:
        self.draw()
        self.sleep(self.success_hold_seconds)
        self.session.dismiss_popup()
        return SessionResult(self.session.artifact_path, self.session.database)

    def handle_key(self, key: str) -> bool:
        """Dispatch one key.

        Returns:
            False if the key ends the session
        """
        session = self.session

        # An open popup takes every key except quit
        if session.has_popup:
            if key == QUIT_KEY:
                return False
            self._handle_popup_key(key)
            return True

        if session.input_mode is InputMode.EDITING:
            self._handle_edit_key(key)
            return True

        if key == QUIT_KEY:
            return False
        self._handle_normal_key(key)
        return True

    def _handle_popup_key(self, key: str) -> None:
        session = self.session
        popup = session.popup

        if isinstance(popup, ConfirmRestore):
            if key == "y":
                session.start_download()
            elif key in ("n", keys.ESC):
                session.dismiss_popup()
        elif isinstance(popup, Downloading):
            if key == keys.ESC:
                session.request_cancel_download()
        elif isinstance(popup, ConfirmCancel):
            if key == "y":
                session.confirm_cancel_download()
            elif key in ("n", keys.ESC):
                session.continue_download()
        elif isinstance(popup, (ErrorPopup, SuccessPopup, ConnectionTestResult)):
            if key in DISMISS_KEYS:
                session.dismiss_popup()

    def _handle_edit_key(self, key: str) -> None:
        session = self.session
        if key == keys.ENTER:
            session.commit_edit()
        elif key == keys.ESC:
            session.cancel_edit()
        elif key == keys.BACKSPACE:
            session.edit_backspace()
        elif len(key) == 1 and key.isprintable():
            session.edit_insert(key)

    def _handle_normal_key(self, key: str) -> None:
        session = self.session
        if key == keys.TAB:
            session.advance_focus()
        elif key == "e":
            session.begin_edit()
        elif key == "r":
            session.refresh()
        elif key == "t":
            session.test_connection()
        elif key == keys.ENTER:
            session.request_restore()
        elif key in SELECTION_KEYS:
            session.move_selection(SELECTION_KEYS[key])
        elif key in FOCUS_SHORTCUTS:
            session.focus_on(FOCUS_SHORTCUTS[key])
