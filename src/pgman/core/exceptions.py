"""Error types raised by pgman.

The CLI catches PgmanError at the top level, prints message, details and
hint, and exits with the class's exit_code. The snapshot browser never lets
these escape; it turns them into error popups instead.
"""

from typing import Optional


class PgmanError(Exception):
    """Root of the pgman error hierarchy.

    ``details`` are extra lines shown under the message (stderr, exit
    codes); ``hint`` is a one-line suggestion for the operator.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = list(details or [])

    def __str__(self) -> str:
        return self.message


class ConfigurationError(PgmanError):
    """The config file is unreadable, not YAML, or fails validation."""
    exit_code = 2


class ValidationError(PgmanError):
    """A user-supplied value was rejected.

    ``field`` names the offending setting (port, database, endpoint...) so
    the browser can keep editing the right input.
    """
    exit_code = 3

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, hint=hint, details=details)
        self.field = field


class ExecutionError(PgmanError):
    """psql, pg_dump or pg_restore exited non-zero, timed out, or is missing."""
    exit_code = 5

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        lines = list(details or [])
        if return_code is not None:
            lines.append(f"Exit code: {return_code}")
        if stderr:
            lines.append(f"Error output: {stderr}")
        super().__init__(message, hint=hint, details=lines)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class PrerequisiteError(PgmanError):
    """A client tool is not on PATH, or browse was started without a terminal."""
    exit_code = 6


class PostgresError(PgmanError):
    """The server could not be reached or refused a database operation."""
    exit_code = 10


class BackupError(PgmanError):
    """Dumping or restoring failed, or a snapshot could not be obtained."""
    exit_code = 12


class StoreError(BackupError):
    """The object store rejected a listing, fetch or bucket enumeration."""


class TransferError(BackupError):
    """A snapshot download stopped part way (no size, read or write failure)."""
