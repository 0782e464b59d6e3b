"""Interactive snapshot browser."""

from pgman.browser.controller import BrowserController, SessionResult
from pgman.browser.download import DownloadPipeline, DownloadState
from pgman.browser.renderer import render
from pgman.browser.session import SnapshotBrowser
from pgman.browser.state import FocusField, InputMode, Provider

__all__ = [
    "BrowserController",
    "SessionResult",
    "DownloadPipeline",
    "DownloadState",
    "render",
    "SnapshotBrowser",
    "FocusField",
    "InputMode",
    "Provider",
]
