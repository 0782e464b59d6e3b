"""Unit tests for browser frame rendering."""

import io

import pytest
from rich.console import Console

from pgman.browser.renderer import format_rate, format_snapshot, render
from pgman.browser.state import (
    ConfirmCancel,
    ConfirmRestore,
    ConnectionTestResult,
    Downloading,
    ErrorPopup,
    FocusField,
    InputMode,
    Provider,
    SuccessPopup,
)
from pgman.models import DatabaseConfig, SnapshotMetadata

from fakes import BASE_TIME, entry


def screen(session, width=140, height=40):
    """Render the session to plain text."""
    console = Console(record=True, width=width, height=height, file=io.StringIO(), color_system=None)
    console.print(render(session))
    return console.export_text()


@pytest.fixture
def snapshot():
    return SnapshotMetadata("nightly/app.dump", 5 * 1024 * 1024, BASE_TIME)


class TestFormatting:
    """Tests for list line and rate formatting."""

    def test_format_snapshot(self, snapshot):
        assert format_snapshot(snapshot) == "nightly/app.dump - 5.00 MB - 2024-05-01 12:00:00"

    def test_format_rate(self):
        assert format_rate(1.5 * 1024 * 1024) == "1.50 MB/s"
        assert format_rate(0.0) == "0.00 MB/s"


class TestLayout:
    """Tests for the main browser frame."""

    def test_title_panels_and_help(self, make_session):
        text = screen(make_session())
        assert "PostgreSQL Backup Manager" in text
        assert "S3 Settings" in text
        assert "PostgreSQL Settings" in text
        assert "q quit" in text

    def test_field_values(self, make_session):
        session = make_session(database=DatabaseConfig(host="db.internal", port=6432))
        text = screen(session)
        assert "Bucket: backups" in text
        assert "Region: us-east-1" in text
        assert "db.internal" in text
        assert "6432" in text

    def test_empty_list(self, make_session):
        text = screen(make_session())
        assert "No snapshots found" in text
        assert "Snapshots (0)" in text

    def test_snapshot_rows(self, make_session, gateway):
        gateway.entries = [entry("a.dump", size=1024 * 1024), entry("b.dump", hours_ago=1)]
        session = make_session()
        session.list_snapshots()
        text = screen(session)
        assert "Snapshots (2)" in text
        assert "a.dump - 1.00 MB - 2024-05-01 12:00:00" in text
        assert "b.dump" in text
        assert "No snapshots found" not in text

    def test_last_error_inline(self, make_session):
        session = make_session()
        session.store.last_error = "Bucket is required"
        assert "Bucket is required" in screen(session)

    def test_edit_buffer_shown(self, make_session):
        session = make_session()
        session.focus_on(FocusField.PREFIX)
        session.begin_edit()
        session.edit_insert("nightly/")
        text = screen(session)
        assert "nightly/_" in text
        assert "Esc cancel | Enter save" in text


class TestSecretMasking:
    """Secrets never appear in a frame."""

    def test_store_secrets_masked(self, make_session):
        text = screen(make_session())
        assert "supersecretvalue" not in text
        assert "supe.....alue" in text
        assert "AKIAEXAMPLE" not in text
        assert "AKIA.....MPLE" in text

    def test_database_password_masked(self, make_session):
        session = make_session(database=DatabaseConfig(password="pw"))
        text = screen(session)
        assert "Password: **" in text

    def test_edit_buffer_masked(self, make_session):
        session = make_session()
        session.focus_on(FocusField.SECRET_KEY)
        session.begin_edit()
        session.edit_insert("-rotated")
        text = screen(session)
        assert "supersecretvalue-rotated" not in text
        assert "supe.....ated_" in text


class TestPopups:
    """Tests for popup panels."""

    def test_confirm_restore(self, make_session, snapshot):
        session = make_session()
        session.popup = ConfirmRestore(snapshot)
        text = screen(session)
        assert "Confirm Restore" in text
        assert "'nightly/app.dump'" in text
        assert "Press 'y' to confirm, 'n' to cancel" in text
        # The popup replaces the snapshot list
        assert "Snapshots (" not in text

    def test_downloading(self, make_session, snapshot):
        session = make_session()
        session.popup = Downloading(snapshot, 0.425, 2 * 1024 * 1024)
        text = screen(session)
        assert "Downloading" in text
        assert "Progress: 42.5% (2.00 MB/s)" in text
        assert "Press Esc to cancel" in text

    def test_confirm_cancel(self, make_session, snapshot):
        session = make_session()
        session.popup = ConfirmCancel(snapshot, 0.3, 0.0)
        text = screen(session)
        assert "Confirm Cancel" in text
        assert "Progress: 30.0% (0.00 MB/s)" in text
        assert "'n' to continue downloading" in text

    def test_error(self, make_session):
        session = make_session()
        session.popup = ErrorPopup("Failed to list objects: AccessDenied: denied")
        text = screen(session)
        assert "Error" in text
        assert "AccessDenied: denied" in text

    def test_success(self, make_session):
        session = make_session()
        session.popup = SuccessPopup("Download complete")
        text = screen(session)
        assert "Success" in text
        assert "Download complete" in text

    @pytest.mark.parametrize("provider,heading", [
        (Provider.STORE, "S3 Connection Test"),
        (Provider.DATABASE, "PostgreSQL Connection Test"),
    ])
    def test_connection_result(self, make_session, provider, heading):
        session = make_session()
        session.popup = ConnectionTestResult(provider, "Successfully connected")
        text = screen(session)
        assert "Test Result" in text
        assert heading in text
        assert "Successfully connected" in text

    def test_render_does_not_mutate(self, make_session, snapshot):
        session = make_session()
        session.popup = Downloading(snapshot, 0.5, 1.0)
        session.input_mode = InputMode.NORMAL
        before = (session.popup, session.focus, session.selected, list(session.snapshots))
        screen(session)
        assert (session.popup, session.focus, session.selected, list(session.snapshots)) == before
