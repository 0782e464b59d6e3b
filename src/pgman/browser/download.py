"""Chunked, cancellable snapshot download.

The pipeline is a step function: the browser loop calls step() once per
iteration so that key polling and redraws happen between chunks. Only one
chunk is held in memory at a time.

States:
    IDLE -> DOWNLOADING -> DOWNLOADING (one step per chunk)
                        -> CONFIRM_CANCEL -> DOWNLOADING | CANCELLED
                        -> FAILED
                        -> SUCCEEDED
"""

import os
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional

from pgman.core.config import DEFAULT_CHUNK_SIZE
from pgman.core.exceptions import PgmanError, TransferError
from pgman.models import SnapshotMetadata
from pgman.services.s3 import ObjectStoreGateway, ObjectStream


RATE_SAMPLE_INTERVAL = 0.5
# Highest progress shown before the body is known to be exhausted
IN_FLIGHT_PROGRESS_LIMIT = 0.999
TEMP_PREFIX = "pgman-"
DEFAULT_SUFFIX = ".dump"


class DownloadState(Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    CONFIRM_CANCEL = "confirm_cancel"
    CANCELLED = "cancelled"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


FINISHED_STATES = frozenset({
    DownloadState.CANCELLED,
    DownloadState.FAILED,
    DownloadState.SUCCEEDED,
})


def _temp_suffix(key: str) -> str:
    name = key.rsplit("/", 1)[-1]
    _, ext = os.path.splitext(name)
    return ext or DEFAULT_SUFFIX


class DownloadPipeline:
    """Streams one snapshot into a private temporary file.

    The temporary file belongs to the pipeline until the download succeeds;
    after that, `path` is handed to the caller. Cancelled and failed
    downloads remove it.
    """

    def __init__(
        self,
        gateway: ObjectStoreGateway,
        bucket: str,
        snapshot: SnapshotMetadata,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        clock: Callable[[], float] = time.monotonic,
        directory: Optional[Path] = None,
    ) -> None:
        self.gateway = gateway
        self.bucket = bucket
        self.snapshot = snapshot
        self.chunk_size = chunk_size
        self.clock = clock
        self.directory = directory

        self.state = DownloadState.IDLE
        self.progress = 0.0
        self.rate = 0.0
        self.bytes_transferred = 0
        self.total_bytes: Optional[int] = None
        self.path: Optional[Path] = None
        self.error: Optional[str] = None

        self._stream: Optional[ObjectStream] = None
        self._chunks: Optional[Iterator[bytes]] = None
        self._pending: Optional[bytes] = None
        self._file: Optional[BinaryIO] = None
        self._temp_path: Optional[Path] = None
        self._sample_time = 0.0
        self._sample_bytes = 0

    @property
    def is_finished(self) -> bool:
        return self.state in FINISHED_STATES

    def start(self) -> DownloadState:
        """Allocate the temporary file and request the object.

        Returns:
            DOWNLOADING, or FAILED if the request fails or the store does not
            report the object's length
        """
        if self.state is not DownloadState.IDLE:
            raise TransferError(f"Download already started ({self.state.value})")

        try:
            fd, name = tempfile.mkstemp(
                prefix=TEMP_PREFIX,
                suffix=_temp_suffix(self.snapshot.key),
                dir=self.directory,
            )
        except OSError as e:
            return self._fail(f"Failed to create temporary file: {e}")

        self._temp_path = Path(name)
        self._file = os.fdopen(fd, "wb")

        try:
            self._stream = self.gateway.open_object(self.bucket, self.snapshot.key)
        except PgmanError as e:
            return self._fail(e.message)

        if self._stream.total_length is None:
            return self._fail("Could not determine file size")

        self.total_bytes = self._stream.total_length
        self._chunks = self._stream.iter_chunks(self.chunk_size)
        self.state = DownloadState.DOWNLOADING
        self._reset_rate_baseline()
        return self.state

    def step(self) -> DownloadState:
        """Transfer at most one chunk.

        Does nothing unless the pipeline is DOWNLOADING. The step that writes
        the reported last byte also confirms the body is exhausted and
        finishes the download, so progress only reaches 1.0 on SUCCEEDED.
        """
        if self.state is not DownloadState.DOWNLOADING:
            return self.state

        try:
            chunk, self._pending = self._pending, None
            if chunk is None:
                chunk = next(self._chunks, None)
            if chunk is None:
                return self._complete()
            self._file.write(chunk)
            self.bytes_transferred += len(chunk)
            if self.total_bytes is not None and self.bytes_transferred >= self.total_bytes:
                self._pending = next(self._chunks, None)
                if self._pending is None:
                    self._sample_rate()
                    return self._complete()
        except (PgmanError, OSError) as e:
            message = e.message if isinstance(e, PgmanError) else f"Write failed: {e}"
            return self._fail(message)

        if self.total_bytes:
            fraction = min(IN_FLIGHT_PROGRESS_LIMIT, self.bytes_transferred / self.total_bytes)
            self.progress = max(self.progress, fraction)
        self._sample_rate()
        return self.state

    def request_cancel(self) -> DownloadState:
        """Pause reading until the operator confirms or withdraws the cancel."""
        if self.state is DownloadState.DOWNLOADING:
            self.state = DownloadState.CONFIRM_CANCEL
        return self.state

    def resume(self) -> DownloadState:
        """Continue after a withdrawn cancel.

        Progress and rate keep their captured values; the rate is re-measured
        from this moment.
        """
        if self.state is DownloadState.CONFIRM_CANCEL:
            self.state = DownloadState.DOWNLOADING
            self._reset_rate_baseline()
        return self.state

    def cancel(self) -> DownloadState:
        """Abort the transfer and remove the partial file."""
        if self.state in (DownloadState.DOWNLOADING, DownloadState.CONFIRM_CANCEL):
            self._discard()
            self.state = DownloadState.CANCELLED
        return self.state

    def _reset_rate_baseline(self) -> None:
        self._sample_time = self.clock()
        self._sample_bytes = self.bytes_transferred

    def _sample_rate(self) -> None:
        now = self.clock()
        elapsed = now - self._sample_time
        if elapsed >= RATE_SAMPLE_INTERVAL:
            self.rate = (self.bytes_transferred - self._sample_bytes) / elapsed
            self._sample_time = now
            self._sample_bytes = self.bytes_transferred

    def _complete(self) -> DownloadState:
        self._file.flush()
        self._file.close()
        self._file = None
        self._close_stream()
        self.progress = 1.0
        self.path = self._temp_path
        self._temp_path = None
        self.state = DownloadState.SUCCEEDED
        return self.state

    def _fail(self, message: str) -> DownloadState:
        self._discard()
        self.error = message
        self.state = DownloadState.FAILED
        return self.state

    def _close_stream(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._chunks = None
        self._pending = None

    def _discard(self) -> None:
        """Close everything and delete the partial file."""
        self._close_stream()
        if self._file is not None:
            self._file.close()
            self._file = None
        if self._temp_path is not None:
            self._temp_path.unlink(missing_ok=True)
            self._temp_path = None
        self.path = None
