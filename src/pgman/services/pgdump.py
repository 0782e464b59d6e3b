"""Custom-format dumps and restores via pg_dump / pg_restore.

Snapshots downloaded by the browser are pg_dump ``-Fc`` archives, so the
same restore path serves both ``pgman restore`` and ``browse --restore-to``.
"""

import shutil
from pathlib import Path

from pgman.core.context import ExecutionContext
from pgman.core.exceptions import BackupError, ExecutionError
from pgman.core.executor import CommandExecutor
from pgman.core.output import console
from pgman.models import DatabaseConfig


REQUIRED_COMMANDS = ("pg_dump", "pg_restore", "psql")

# pg_restore exits non-zero for ignorable warnings; only these mean failure
_FATAL_MARKERS = ("error:", "fatal:")


class PgDumpService:
    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        db: DatabaseConfig,
    ) -> None:
        self.ctx = ctx
        self.executor = executor
        self.db = db

    def check_commands_available(self) -> tuple[bool, list[str]]:
        """Return (all present, names missing from PATH)."""
        missing = [name for name in REQUIRED_COMMANDS if shutil.which(name) is None]
        return not missing, missing

    def dump_database(self, database: str, output_path: Path) -> Path:
        """Write ``database`` to ``output_path`` as a custom-format archive."""
        command = [
            "pg_dump",
            *self.db.connection_args(database=database),
            "--format=custom",
            "--file",
            str(output_path),
        ]
        try:
            self.executor.run(command, description=f"Dump database '{database}'",
                              env=self.db.environment())
        except ExecutionError as e:
            raise BackupError(f"Failed to dump database '{database}'", details=e.details) from e

        if not self.ctx.dry_run:
            console.success(f"Dumped '{database}' to {output_path}")
        return output_path

    def restore_database(
        self,
        dump_path: Path,
        target_database: str,
        *,
        jobs: int = 4,
        no_owner: bool = False,
    ) -> None:
        """Load a custom-format archive into an existing database.

        Raises BackupError if the archive is missing or pg_restore reports
        an error. Warnings alone are printed and tolerated.
        """
        if not dump_path.exists():
            raise BackupError(f"Dump file not found: {dump_path}")

        command = ["pg_restore", *self.db.connection_args(database=target_database)]
        if jobs > 1:
            command += ["-j", str(jobs)]
        if no_owner:
            command.append("--no-owner")
        if self.ctx.is_verbose:
            command.append("-v")
        command.append(str(dump_path))

        result = self.executor.run(command, description=f"Restore to {target_database}",
                                   check=False, env=self.db.environment())
        stderr = result.stderr.strip()
        if not result.success:
            if any(marker in stderr.lower() for marker in _FATAL_MARKERS):
                raise BackupError(
                    f"Failed to restore to '{target_database}'",
                    details=[stderr] if stderr else None,
                )
            console.warn("Restore completed with warnings")
            if stderr:
                console.verbose(stderr)

        if not self.ctx.dry_run:
            console.success(f"Restored database '{target_database}'")


def format_bytes(size_bytes: float) -> str:
    """Human-readable size with one decimal, e.g. ``1.5 GB``."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} PB"
