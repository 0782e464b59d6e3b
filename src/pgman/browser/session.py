"""Snapshot browser session state.

Holds the two configuration domains, the snapshot listing, focus, input
mode and the active popup. All mutation happens through the methods below,
called by the controller in key order. Only ensure_client() and
list_snapshots() raise; every other operation turns errors into a popup
or, for background listings, into the store config's last_error.
"""

import time
from pathlib import Path
from typing import Callable, Optional

from pgman.browser.download import DownloadPipeline, DownloadState
from pgman.browser.state import (
    DATABASE_FIELDS,
    HIDDEN,
    STORE_FIELDS,
    ConfirmCancel,
    ConfirmRestore,
    ConnectionTestResult,
    Downloading,
    ErrorPopup,
    FocusField,
    Hidden,
    InputMode,
    Popup,
    Provider,
    SuccessPopup,
)
from pgman.core.audit import AuditEventType, AuditLogger, get_audit_logger
from pgman.core.config import DEFAULT_CHUNK_SIZE
from pgman.core.exceptions import PgmanError, StoreError, ValidationError
from pgman.core.validation import parse_flag, parse_port
from pgman.models import DatabaseConfig, ObjectStoreConfig, SnapshotMetadata
from pgman.services.s3 import ObjectStoreGateway


ClientFactory = Callable[[ObjectStoreConfig], ObjectStoreGateway]
# Returns a short description of the server (e.g. its version)
DatabaseProbe = Callable[[DatabaseConfig], str]

DOWNLOAD_COMPLETE_MESSAGE = "Download complete"


class SnapshotBrowser:
    """State of one browsing session."""

    def __init__(
        self,
        store: ObjectStoreConfig,
        database: DatabaseConfig,
        *,
        client_factory: ClientFactory = ObjectStoreGateway.from_config,
        database_probe: Optional[DatabaseProbe] = None,
        audit: Optional[AuditLogger] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        download_dir: Optional[Path] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.database = database
        self.client_factory = client_factory
        self.database_probe = database_probe
        self.audit = audit or get_audit_logger()
        self.chunk_size = chunk_size
        self.download_dir = download_dir
        self.clock = clock

        self.client: Optional[ObjectStoreGateway] = None
        self.snapshots: list[SnapshotMetadata] = []
        self.selected: Optional[int] = None
        self.input_mode = InputMode.NORMAL
        self.focus = FocusField.SNAPSHOT_LIST
        self.popup: Popup = HIDDEN
        self.edit_buffer = ""
        self.artifact_path: Optional[Path] = None
        self.download: Optional[DownloadPipeline] = None

    @property
    def selected_snapshot(self) -> Optional[SnapshotMetadata]:
        if self.selected is None:
            return None
        return self.snapshots[self.selected]

    @property
    def has_popup(self) -> bool:
        return not isinstance(self.popup, Hidden)

    # Navigation and editing

    def advance_focus(self) -> None:
        self.focus = self.focus.next()

    def focus_on(self, field: FocusField) -> None:
        self.focus = field

    def field_text(self, field: FocusField) -> str:
        """String form of a field's current value, as loaded into the edit buffer."""
        if field in STORE_FIELDS:
            value = getattr(self.store, STORE_FIELDS[field])
        elif field in DATABASE_FIELDS:
            value = getattr(self.database, DATABASE_FIELDS[field])
        else:
            return ""

        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def begin_edit(self) -> None:
        """Load the focused field into the edit buffer.

        Ignored while editing or when the snapshot list has focus.
        """
        if self.input_mode is not InputMode.NORMAL or self.focus is FocusField.SNAPSHOT_LIST:
            return
        self.edit_buffer = self.field_text(self.focus)
        self.input_mode = InputMode.EDITING

    def edit_insert(self, char: str) -> None:
        if self.input_mode is InputMode.EDITING:
            self.edit_buffer += char

    def edit_backspace(self) -> None:
        if self.input_mode is InputMode.EDITING:
            self.edit_buffer = self.edit_buffer[:-1]

    def cancel_edit(self) -> None:
        self.edit_buffer = ""
        self.input_mode = InputMode.NORMAL

    def commit_edit(self) -> None:
        """Parse the edit buffer into the focused field.

        A rejected port leaves the field unchanged and opens an error popup.
        Committing any store field drops the client and re-lists snapshots.
        """
        if self.input_mode is not InputMode.EDITING:
            return

        field, buffer = self.focus, self.edit_buffer
        self.cancel_edit()

        if field in STORE_FIELDS:
            value = parse_flag(buffer) if field.is_flag else buffer
            setattr(self.store, STORE_FIELDS[field], value)
            self.client = None
            self.refresh(surface_validation=False)
            return

        if field is FocusField.DB_PORT:
            try:
                value = parse_port(buffer)
            except ValidationError as e:
                self.popup = ErrorPopup(e.message)
                return
        elif field.is_flag:
            value = parse_flag(buffer)
        else:
            value = buffer or None
        setattr(self.database, DATABASE_FIELDS[field], value)

    def move_selection(self, delta: int) -> None:
        """Move the selection by delta, stopping at both ends of the list."""
        if self.focus is not FocusField.SNAPSHOT_LIST or not self.snapshots:
            return
        if self.selected is None:
            self.selected = 0 if delta > 0 else len(self.snapshots) - 1
            return
        target = self.selected + delta
        if 0 <= target < len(self.snapshots):
            self.selected = target

    # Object store

    def ensure_client(self) -> ObjectStoreGateway:
        """Return the current client, building one from a valid config if needed.

        Raises:
            ValidationError: If a required store field is empty
            StoreError: If the client cannot be built
        """
        if self.client is not None:
            return self.client

        try:
            self.store.validate()
            client = self.client_factory(self.store)
        except PgmanError as e:
            self.store.last_error = e.message
            raise

        self.store.last_error = None
        self.client = client
        return client

    def list_snapshots(self) -> None:
        """Replace the snapshot list with a fresh listing, newest first.

        Entries without a size or last-modified time are skipped. On failure
        the previous list and selection are kept.

        Raises:
            ValidationError: If the store config is incomplete
            StoreError: If the listing fails
        """
        client = self.ensure_client()
        try:
            entries = client.list_objects(self.store.bucket, self.store.prefix)
        except StoreError as e:
            self.store.last_error = e.message
            self.audit.log_failure(
                AuditEventType.SNAPSHOT_LIST, "bucket", self.store.bucket, e.message,
            )
            raise

        snapshots = [
            SnapshotMetadata(key=entry["key"], size=entry["size"], last_modified=entry["last_modified"])
            for entry in entries
            if entry.get("size") is not None and entry.get("last_modified") is not None
        ]
        snapshots.sort(key=lambda s: s.last_modified, reverse=True)

        previous = self.selected
        self.snapshots = snapshots
        if not snapshots:
            self.selected = None
        elif previous is not None:
            self.selected = min(previous, len(snapshots) - 1)
        else:
            self.selected = 0

        self.store.last_error = None
        self.audit.log_success(
            AuditEventType.SNAPSHOT_LIST,
            "bucket",
            self.store.bucket,
            parameters={"prefix": self.store.prefix, "count": len(snapshots)},
        )

    def refresh(self, *, surface_validation: bool = True) -> None:
        """List snapshots, turning failures into an error popup.

        Args:
            surface_validation: Also pop up incomplete-config errors; when
                False they only show inline via last_error
        """
        try:
            self.list_snapshots()
        except ValidationError as e:
            if surface_validation:
                self.popup = ErrorPopup(e.message)
        except PgmanError as e:
            self.popup = ErrorPopup(e.message)

    def test_store_connection(self) -> None:
        """Enumerate buckets and report the outcome. The snapshot list is untouched."""
        try:
            buckets = self.ensure_client().list_buckets()
        except PgmanError as e:
            self.audit.log_failure(AuditEventType.STORE_TEST, "store", self.store.endpoint, e.message)
            self.popup = ErrorPopup(e.message)
            return

        names = ", ".join(buckets) if buckets else "(none)"
        self.audit.log_success(AuditEventType.STORE_TEST, "store", self.store.endpoint)
        self.popup = ConnectionTestResult(
            Provider.STORE,
            f"Successfully connected to S3!\nAvailable buckets: {names}",
        )

    def test_database_connection(self) -> None:
        try:
            self.database.validate()
        except ValidationError as e:
            self.popup = ErrorPopup(e.message)
            return

        target = f"{self.database.host}:{self.database.port}"
        lines = []
        if self.database_probe is not None:
            try:
                server = self.database_probe(self.database)
            except PgmanError as e:
                self.audit.log_failure(AuditEventType.DATABASE_TEST, "server", target, e.message)
                self.popup = ErrorPopup(e.message)
                return
            self.audit.log_success(AuditEventType.DATABASE_TEST, "server", target)
            lines = ["Successfully connected to PostgreSQL!", server]
        else:
            self.audit.log_success(AuditEventType.DATABASE_TEST, "server", target,
                                   message="Settings validated; no server probe configured")
        lines.append(f"Connection string: {self.database.connection_string()}")
        self.popup = ConnectionTestResult(Provider.DATABASE, "\n".join(lines))

    def test_connection(self) -> None:
        """Test the domain of the focused field; the snapshot list counts as store."""
        if self.focus.is_database_field:
            self.test_database_connection()
        else:
            self.test_store_connection()

    # Popups

    def request_restore(self) -> None:
        snapshot = self.selected_snapshot
        if self.focus is FocusField.SNAPSHOT_LIST and snapshot is not None:
            self.popup = ConfirmRestore(snapshot)

    def dismiss_popup(self) -> None:
        self.popup = HIDDEN

    # Download

    @property
    def is_transferring(self) -> bool:
        return self.download is not None and not self.download.is_finished

    def start_download(self) -> None:
        """Begin downloading the snapshot awaiting restore confirmation."""
        if not isinstance(self.popup, ConfirmRestore):
            return
        snapshot = self.popup.snapshot
        self.artifact_path = None

        try:
            client = self.ensure_client()
        except PgmanError as e:
            self.popup = ErrorPopup(e.message)
            return

        self.download = DownloadPipeline(
            client,
            self.store.bucket,
            snapshot,
            chunk_size=self.chunk_size,
            clock=self.clock,
            directory=self.download_dir,
        )
        self.audit.log_success(
            AuditEventType.DOWNLOAD_START,
            "snapshot",
            self.store.build_uri(snapshot.key),
            parameters={"size": snapshot.size},
        )
        self.download.start()
        self._sync_download()

    def pump_download(self) -> Optional[DownloadState]:
        """Transfer one chunk and mirror the result into the popup."""
        if self.download is None:
            return None
        self.download.step()
        return self._sync_download()

    def request_cancel_download(self) -> None:
        if self.download is not None:
            self.download.request_cancel()
            self._sync_download()

    def continue_download(self) -> None:
        if self.download is not None:
            self.download.resume()
            self._sync_download()

    def confirm_cancel_download(self) -> None:
        if self.download is not None:
            self.download.cancel()
            self._sync_download()

    def abort_download(self) -> None:
        """Drop a running transfer without confirmation (used on quit)."""
        if self.is_transferring:
            self.download.cancel()
            self._sync_download()

    def _sync_download(self) -> Optional[DownloadState]:
        pipeline = self.download
        state = pipeline.state
        uri = self.store.build_uri(pipeline.snapshot.key)

        if state is DownloadState.DOWNLOADING:
            self.popup = Downloading(pipeline.snapshot, pipeline.progress, pipeline.rate)
            return state
        if state is DownloadState.CONFIRM_CANCEL:
            self.popup = ConfirmCancel(pipeline.snapshot, pipeline.progress, pipeline.rate)
            return state

        self.download = None
        if state is DownloadState.SUCCEEDED:
            self.artifact_path = pipeline.path
            self.popup = SuccessPopup(DOWNLOAD_COMPLETE_MESSAGE)
            self.audit.log_success(
                AuditEventType.DOWNLOAD_COMPLETE,
                "snapshot",
                uri,
                parameters={"path": str(pipeline.path), "bytes": pipeline.bytes_transferred},
            )
        elif state is DownloadState.FAILED:
            self.artifact_path = None
            self.popup = ErrorPopup(pipeline.error or "Download failed")
            self.audit.log_failure(AuditEventType.DOWNLOAD_FAIL, "snapshot", uri, pipeline.error or "")
        elif state is DownloadState.CANCELLED:
            self.artifact_path = None
            self.popup = HIDDEN
            self.audit.log_cancelled(
                AuditEventType.DOWNLOAD_CANCEL,
                "snapshot",
                uri,
                message=f"Cancelled at {pipeline.progress:.0%}",
            )
        return state
