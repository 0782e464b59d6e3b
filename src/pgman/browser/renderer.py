"""Frame rendering for the snapshot browser.

render() builds a Rich layout from the session and nothing else: it does
no I/O and never mutates the session. A visible popup replaces the
snapshot list area with a centred panel.
"""

from rich.align import Align
from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.text import Text

from pgman.browser.session import SnapshotBrowser
from pgman.browser.state import (
    DATABASE_FIELDS,
    STORE_FIELDS,
    ConfirmCancel,
    ConfirmRestore,
    ConnectionTestResult,
    Downloading,
    ErrorPopup,
    FocusField,
    InputMode,
    Popup,
    Provider,
    SuccessPopup,
)
from pgman.models import SnapshotMetadata, mask_secret


TITLE = "PostgreSQL Backup Manager"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
POPUP_WIDTH = 72
PROGRESS_BAR_WIDTH = 50

# One row per field plus the panel borders
SETTINGS_HEIGHT = max(len(STORE_FIELDS), len(DATABASE_FIELDS)) + 2

FOCUS_STYLE = "bold yellow"
EDIT_STYLE = "bold black on yellow"
SELECTED_STYLE = "reverse"

HELP_NORMAL = (
    "q quit | Tab next field | e edit | t test connection | r refresh | Enter restore | "
    "b/R/x/E/a/s/P store fields | h/p/u/f/l/n database fields"
)
HELP_EDITING = "Esc cancel | Enter save"

SHORTCUTS = {
    FocusField.BUCKET: "b",
    FocusField.REGION: "R",
    FocusField.PREFIX: "x",
    FocusField.ENDPOINT: "E",
    FocusField.ACCESS_KEY: "a",
    FocusField.SECRET_KEY: "s",
    FocusField.PATH_STYLE: "P",
    FocusField.DB_HOST: "h",
    FocusField.DB_PORT: "p",
    FocusField.DB_USERNAME: "u",
    FocusField.DB_PASSWORD: "f",
    FocusField.DB_SSL: "l",
    FocusField.DB_NAME: "n",
}


def format_rate(rate: float) -> str:
    return f"{rate / 1024 / 1024:.2f} MB/s"


def format_snapshot(snapshot: SnapshotMetadata) -> str:
    """One list line: key - size - timestamp."""
    return (
        f"{snapshot.key} - {snapshot.size_mb:.2f} MB - "
        f"{snapshot.last_modified.strftime(TIMESTAMP_FORMAT)}"
    )


def _field_display(session: SnapshotBrowser, field: FocusField) -> str:
    editing = session.input_mode is InputMode.EDITING and session.focus is field
    value = session.edit_buffer if editing else session.field_text(field)
    if field.is_secret:
        value = mask_secret(value)
    return value


def _field_line(session: SnapshotBrowser, field: FocusField) -> Text:
    line = Text()
    line.append(f"[{SHORTCUTS[field]}] ", style="dim")
    line.append(f"{field.label}: ", style="bold")

    value = _field_display(session, field)
    if session.focus is field and session.input_mode is InputMode.EDITING:
        line.append(f"{value}_", style=EDIT_STYLE)
    elif session.focus is field:
        line.append(value or " ", style=FOCUS_STYLE)
    else:
        line.append(value)
    return line


def _settings_panel(session: SnapshotBrowser, title: str, fields) -> Panel:
    lines = [_field_line(session, field) for field in fields]
    focused = session.focus in fields
    return Panel(
        Group(*lines),
        title=title,
        border_style="yellow" if focused else "blue",
    )


def _snapshot_panel(session: SnapshotBrowser) -> Panel:
    rows: list[RenderableType] = []
    if session.store.last_error:
        rows.append(Text(session.store.last_error, style="red"))

    if not session.snapshots:
        rows.append(Text("No snapshots found", style="dim"))

    list_focused = session.focus is FocusField.SNAPSHOT_LIST
    for index, snapshot in enumerate(session.snapshots):
        style = ""
        if index == session.selected:
            style = SELECTED_STYLE if list_focused else "bold"
        rows.append(Text(format_snapshot(snapshot), style=style))

    return Panel(
        Group(*rows),
        title=f"Snapshots ({len(session.snapshots)})",
        border_style="yellow" if list_focused else "blue",
    )


def _transfer_body(heading: str, snapshot: SnapshotMetadata, progress: float, rate: float, hint: str) -> Group:
    return Group(
        Text(f"{heading}: {snapshot.key}"),
        Text(""),
        ProgressBar(total=1.0, completed=progress, width=PROGRESS_BAR_WIDTH),
        Text(f"Progress: {progress * 100:.1f}% ({format_rate(rate)})"),
        Text(""),
        Text(hint, style="dim"),
    )


def render_popup(popup: Popup) -> Panel:
    """Panel for a visible popup."""
    if isinstance(popup, ConfirmRestore):
        body = Group(
            Text(f"Are you sure you want to restore this backup '{popup.snapshot.key}'?"),
            Text(f"{popup.snapshot.size_mb:.2f} MB, "
                 f"{popup.snapshot.last_modified.strftime(TIMESTAMP_FORMAT)}", style="dim"),
            Text(""),
            Text("Press 'y' to confirm, 'n' to cancel", style="dim"),
        )
        return Panel(body, title="Confirm Restore", border_style="yellow", width=POPUP_WIDTH)

    if isinstance(popup, Downloading):
        body = _transfer_body("Downloading", popup.snapshot, popup.progress, popup.rate,
                              "Press Esc to cancel")
        return Panel(body, title="Downloading", border_style="blue", width=POPUP_WIDTH)

    if isinstance(popup, ConfirmCancel):
        body = _transfer_body("Cancel download of", popup.snapshot, popup.progress, popup.rate,
                              "Press 'y' to confirm cancel, 'n' to continue downloading")
        return Panel(body, title="Confirm Cancel", border_style="yellow", width=POPUP_WIDTH)

    if isinstance(popup, ErrorPopup):
        body = Group(
            Text(popup.message, style="bold red"),
            Text(""),
            Text("Press Esc to dismiss", style="dim"),
        )
        return Panel(body, title="Error", border_style="red", width=POPUP_WIDTH)

    if isinstance(popup, SuccessPopup):
        return Panel(Text(popup.message, style="bold green"), title="Success",
                     border_style="green", width=POPUP_WIDTH)

    if isinstance(popup, ConnectionTestResult):
        heading = "S3 Connection Test" if popup.provider is Provider.STORE else "PostgreSQL Connection Test"
        body = Group(
            Text(heading, style="bold"),
            Text(""),
            Text(popup.message, style="green"),
            Text(""),
            Text("Press Esc to dismiss", style="dim"),
        )
        return Panel(body, title="Test Result", border_style="green", width=POPUP_WIDTH)

    raise TypeError(f"No panel for popup {popup!r}")


def _help_line(session: SnapshotBrowser) -> Text:
    if session.has_popup:
        return Text("q quit", style="dim")
    if session.input_mode is InputMode.EDITING:
        return Text(HELP_EDITING, style="dim")
    return Text(HELP_NORMAL, style="dim", no_wrap=True, overflow="ellipsis")


def render(session: SnapshotBrowser) -> Layout:
    """Build the full browser frame for the current session state."""
    layout = Layout(name="root")
    layout.split_column(
        Layout(Panel(Align.center(Text(TITLE, style="bold cyan"))), name="title", size=3),
        Layout(name="settings", size=SETTINGS_HEIGHT),
        Layout(name="body"),
        Layout(Panel(_help_line(session)), name="help", size=3),
    )
    layout["settings"].split_row(
        Layout(_settings_panel(session, "S3 Settings", list(STORE_FIELDS)), name="store"),
        Layout(_settings_panel(session, "PostgreSQL Settings", list(DATABASE_FIELDS)), name="database"),
    )

    if session.has_popup:
        layout["body"].update(Align.center(render_popup(session.popup), vertical="middle"))
    else:
        layout["body"].update(_snapshot_panel(session))
    return layout
