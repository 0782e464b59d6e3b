"""Runs the PostgreSQL client tools as subprocesses.

SQL is always fed to psql on stdin, so statements never show up in the
process list or in debug output; connection secrets travel through the
environment (PGPASSWORD, PGSSLMODE) for the same reason.
"""

import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Any, Optional

from pgman.core.context import ExecutionContext
from pgman.core.exceptions import ExecutionError

PSQL_BASE = ["psql", "-X", "-v", "ON_ERROR_STOP=1"]
PSQL_OUTPUT = ["-t", "-A", "-f", "-"]


@dataclass
class CommandResult:
    command: list[str]
    return_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.return_code == 0


class CommandExecutor:
    """Subprocess runner honouring the context's dry-run and verbosity.

    ``quiet=True`` suppresses all console output; the snapshot browser uses
    it while its live display owns the screen.
    """

    def __init__(self, ctx: ExecutionContext) -> None:
        self.ctx = ctx

    def _say(self, quiet: bool, method: str, message: str) -> None:
        if not quiet:
            getattr(self.ctx.console, method)(message)

    def run(
        self,
        command: list[str],
        *,
        description: Optional[str] = None,
        check: bool = True,
        env: Optional[dict[str, str]] = None,
        timeout: Optional[int] = None,
        input_text: Optional[str] = None,
        quiet: bool = False,
    ) -> CommandResult:
        """Run ``command`` and capture its output.

        Raises ExecutionError when the binary is missing, the timeout
        expires, or (with ``check``) the exit status is non-zero.
        """
        shown = shlex.join(command)
        if description:
            self._say(quiet, "step", description)
        self._say(quiet, "debug", f"Running: {shown}")

        if self.ctx.dry_run:
            self._say(quiet, "print", f"[blue][DRY-RUN][/blue] Would run: {shown}")
            return CommandResult(command, 0, "", "")

        full_env = {**os.environ, **env} if env else None
        try:
            proc = subprocess.run(
                command,
                input=input_text,
                capture_output=True,
                text=True,
                env=full_env,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise ExecutionError(
                f"Command not found: {command[0]}",
                command=shown,
                hint="Install the postgresql-client package",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(
                f"{description or command[0]} did not finish within {timeout}s",
                command=shown,
            ) from e

        if check and proc.returncode != 0:
            raise ExecutionError(
                f"Command failed: {description or shown}",
                command=shown,
                return_code=proc.returncode,
                stderr=(proc.stderr or "").strip() or None,
            )
        return CommandResult(command, proc.returncode, proc.stdout or "", proc.stderr or "")

    def run_sql(
        self,
        sql: str,
        *,
        connection: list[str],
        env: Optional[dict[str, str]] = None,
        description: Optional[str] = None,
        variables: Optional[dict[str, str]] = None,
        check: bool = True,
        timeout: Optional[int] = None,
        quiet: bool = False,
    ) -> str:
        """Run ``sql`` through psql in tuples-only, unaligned mode.

        ``variables`` become ``-v name=value`` options and can be referenced
        as ``:'name'`` inside the SQL. Returns stripped stdout.
        """
        command = PSQL_BASE + connection
        for name, value in (variables or {}).items():
            command += ["-v", f"{name}={value}"]
        command += PSQL_OUTPUT

        if self.ctx.is_debug:
            self._say(quiet, "debug", f"SQL: {sql if len(sql) <= 200 else sql[:200] + '...'}")

        result = self.run(
            command,
            description=description,
            check=check,
            env=env,
            timeout=timeout,
            input_text=sql,
            quiet=quiet,
        )
        return result.stdout.strip()

    def run_sql_format(
        self,
        sql_template: str,
        *,
        connection: list[str],
        env: Optional[dict[str, str]] = None,
        description: Optional[str] = None,
        check: bool = True,
        **format_args: Any,
    ) -> str:
        """Run a statement built server-side with PostgreSQL's format().

        ``%I`` placeholders are quoted as identifiers and ``%L`` as literals.
        Needed for CREATE/DROP DATABASE, which cannot take bind parameters:

            executor.run_sql_format("DROP DATABASE %I", connection=conn, db_name="scratch")
        """
        run = dict(connection=connection, env=env, check=check)
        if not format_args:
            return self.run_sql(sql_template, description=description, **run)

        args = ", ".join(f":'{name}'" for name in format_args)
        statement = self.run_sql(
            f"SELECT format($${sql_template}$$, {args})",
            variables={name: str(value) for name, value in format_args.items()},
            **run,
        )
        if self.ctx.dry_run or not statement:
            return statement
        return self.run_sql(statement, description=description, **run)
