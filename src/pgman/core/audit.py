"""Append-only JSON audit trail.

Every database, dump and snapshot action pgman performs is written as one
JSON object per line. While the snapshot browser owns the terminal this file
is the only place diagnostics can go, so writing never raises: a log that
cannot be opened is reported at debug level and skipped.
"""

import fcntl
import getpass
import json
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pgman.core.config import DEFAULT_STATE_DIR
from pgman.core.output import console


DEFAULT_LOG_PATH = DEFAULT_STATE_DIR / "audit.log"
DEFAULT_MAX_SIZE_MB = 10
DEFAULT_BACKUP_COUNT = 5

REDACTED = "***REDACTED***"

# Substrings of parameter names whose values never reach the log
_SECRET_MARKERS = ("password", "passwd", "secret", "token", "credential", "access_key")


class AuditEventType(Enum):
    SESSION_START = "session.start"
    SESSION_END = "session.end"

    SNAPSHOT_LIST = "snapshot.list"
    STORE_TEST = "store.test"

    DOWNLOAD_START = "download.start"
    DOWNLOAD_COMPLETE = "download.complete"
    DOWNLOAD_CANCEL = "download.cancel"
    DOWNLOAD_FAIL = "download.fail"

    DATABASE_TEST = "database.test"
    DATABASE_CREATE = "database.create"
    DATABASE_CLONE = "database.clone"
    DATABASE_DROP = "database.drop"

    BACKUP_DUMP = "backup.dump"
    BACKUP_RESTORE = "backup.restore"


class AuditResult(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


def redact(name: str, value: Any) -> Any:
    """Replace secret-looking values, descending into dicts and lists."""
    if any(marker in name.lower() for marker in _SECRET_MARKERS):
        return REDACTED
    if isinstance(value, dict):
        return {k: redact(k, v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(name, item) for item in value]
    return value


def _whoami() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return str(os.getuid())


@dataclass
class AuditEvent:
    """One line of the audit log."""
    event_type: AuditEventType
    result: AuditResult
    target_type: Optional[str] = None
    target_name: Optional[str] = None
    parameters: dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    error: Optional[str] = None
    session_id: Optional[str] = None
    actor: str = field(default_factory=_whoami)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "actor": self.actor,
            "event_type": self.event_type.value,
            "result": self.result.value,
            "target": {"type": self.target_type, "name": self.target_name},
            "parameters": redact("parameters", self.parameters),
            "message": self.message,
            "error": self.error,
        }


class AuditLogger:
    """Writes AuditEvents for one pgman invocation.

    All events share the logger's session_id. The file is locked for each
    append and shifted to ``.1`` .. ``.N`` once it grows past max_size_mb.
    """

    def __init__(
        self,
        log_path: Optional[Path] = None,
        max_size_mb: int = DEFAULT_MAX_SIZE_MB,
        backup_count: int = DEFAULT_BACKUP_COUNT,
        enabled: bool = True,
    ) -> None:
        self.log_path = Path(log_path or DEFAULT_LOG_PATH)
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.backup_count = backup_count
        self.enabled = enabled
        self.session_id = str(uuid.uuid4())

    def log(self, event: AuditEvent) -> None:
        if not self.enabled:
            return
        event.session_id = self.session_id
        line = json.dumps(event.to_dict(), default=str) + "\n"
        try:
            self.log_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self._append(line)
        except OSError as e:
            console.debug(f"Audit log {self.log_path} not writable: {e}")
            return
        try:
            if self.log_path.stat().st_size > self.max_size_bytes:
                self._rotate()
        except OSError as e:
            console.debug(f"Audit log rotation failed: {e}")

    def _append(self, line: str) -> None:
        fd = os.open(self.log_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o600)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            os.write(fd, line.encode("utf-8"))
            os.fsync(fd)
        finally:
            os.close(fd)

    def _rotate(self) -> None:
        def numbered(n: int) -> Path:
            return self.log_path.with_suffix(f".{n}")

        numbered(self.backup_count).unlink(missing_ok=True)
        for n in range(self.backup_count - 1, 0, -1):
            if numbered(n).exists():
                numbered(n).rename(numbered(n + 1))
        self.log_path.rename(numbered(1))
        self.log_path.touch(mode=0o600)

    def _record(self, event_type: AuditEventType, result: AuditResult, target_type: str,
                target_name: str, **details: Any) -> None:
        details["parameters"] = details.get("parameters") or {}
        self.log(AuditEvent(event_type=event_type, result=result, target_type=target_type,
                            target_name=target_name, **details))

    def log_session_start(self, command: str, parameters: Optional[dict[str, Any]] = None) -> None:
        self._record(AuditEventType.SESSION_START, AuditResult.SUCCESS, "command", command,
                     parameters=parameters)

    def log_session_end(self, command: str, artifact: Optional[str] = None) -> None:
        self._record(AuditEventType.SESSION_END, AuditResult.SUCCESS, "command", command,
                     parameters={"artifact": artifact})

    def log_success(
        self,
        event_type: AuditEventType,
        target_type: str,
        target_name: str,
        message: Optional[str] = None,
        parameters: Optional[dict[str, Any]] = None,
    ) -> None:
        self._record(event_type, AuditResult.SUCCESS, target_type, target_name,
                     message=message, parameters=parameters)

    def log_failure(self, event_type: AuditEventType, target_type: str, target_name: str,
                    error: str) -> None:
        self._record(event_type, AuditResult.FAILURE, target_type, target_name, error=error)

    def log_cancelled(self, event_type: AuditEventType, target_type: str, target_name: str,
                      message: Optional[str] = None) -> None:
        self._record(event_type, AuditResult.CANCELLED, target_type, target_name, message=message)


_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def configure_audit_logger(log_path: Optional[Path] = None, enabled: bool = True) -> AuditLogger:
    """Replace the process-wide logger, e.g. once the config file names a path."""
    global _audit_logger
    _audit_logger = AuditLogger(log_path=log_path, enabled=enabled)
    return _audit_logger
