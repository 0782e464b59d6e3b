"""Dump and restore commands.

Commands:
- pgman dump NAME OUTPUT
- pgman restore NAME INPUT
"""

from pathlib import Path
from typing import Optional

import typer

from pgman.commands.common import (
    ConfigOption,
    DryRunOption,
    HostOption,
    NoColorOption,
    PasswordOption,
    PortOption,
    SslOption,
    UsernameOption,
    VerboseOption,
    build_database_config,
    get_audit,
    handle_error,
)
from pgman.core import (
    AuditEventType,
    CommandExecutor,
    ExecutionContext,
    PgmanError,
    PrerequisiteError,
    console,
    create_context,
)
from pgman.core.validation import validate_database_name
from pgman.models import DatabaseConfig
from pgman.services.pgdump import PgDumpService, format_bytes
from pgman.services.postgresql import PostgreSQLService


def require_client_tools(dumper: PgDumpService) -> None:
    """Raise PrerequisiteError if pg_dump, pg_restore or psql is missing."""
    available, missing = dumper.check_commands_available()
    if not available:
        raise PrerequisiteError(
            f"Missing PostgreSQL client tools: {', '.join(missing)}",
            hint="Install the postgresql-client package",
        )


def restore_snapshot(
    ctx: ExecutionContext,
    database: DatabaseConfig,
    dump_path: Path,
    target: str,
    *,
    jobs: int = 4,
    no_owner: bool = False,
) -> None:
    """Restore a dump into target, creating the database if it is missing.

    Raises:
        PgmanError: If any step fails
    """
    validate_database_name(target)
    executor = CommandExecutor(ctx)
    dumper = PgDumpService(ctx, executor, database)
    require_client_tools(dumper)

    pg = PostgreSQLService(ctx, executor, database)
    if not pg.database_exists(target):
        pg.create_database(target)

    dumper.restore_database(dump_path, target, jobs=jobs, no_owner=no_owner)


def dump_command(
    name: str = typer.Argument(..., help="Database to dump"),
    output: Path = typer.Argument(..., help="Output file (custom format)"),
    host: HostOption = None,
    port: PortOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    ssl: SslOption = None,
    config: ConfigOption = None,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Dump a database with pg_dump (custom format)."""
    ctx = create_context(dry_run=dry_run, verbose=verbose, no_color=no_color, config=config)
    audit = get_audit(ctx)

    try:
        validate_database_name(name)
        database = build_database_config(
            ctx.config, host=host, port=port, username=username, password=password, use_ssl=ssl,
        )
        dumper = PgDumpService(ctx, CommandExecutor(ctx), database)
        require_client_tools(dumper)
        dumper.dump_database(name, output)
    except PgmanError as e:
        audit.log_failure(AuditEventType.BACKUP_DUMP, "database", name, e.message)
        handle_error(e)

    if not ctx.dry_run:
        size = format_bytes(output.stat().st_size) if output.exists() else "unknown size"
        audit.log_success(AuditEventType.BACKUP_DUMP, "database", name,
                          parameters={"output": str(output)})
        console.info(f"Dump size: {size}")


def restore_command(
    name: str = typer.Argument(..., help="Target database (created if missing)"),
    input_path: Path = typer.Argument(..., metavar="INPUT", help="Custom-format dump file"),
    jobs: int = typer.Option(4, "--jobs", "-j", min=1, help="Parallel restore jobs"),
    no_owner: bool = typer.Option(False, "--no-owner", help="Skip ownership commands"),
    host: HostOption = None,
    port: PortOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    ssl: SslOption = None,
    config: ConfigOption = None,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Restore a dump file into a database with pg_restore."""
    ctx = create_context(dry_run=dry_run, verbose=verbose, no_color=no_color, config=config)
    audit = get_audit(ctx)

    try:
        database = build_database_config(
            ctx.config, host=host, port=port, username=username, password=password, use_ssl=ssl,
        )
        restore_snapshot(ctx, database, input_path, name, jobs=jobs, no_owner=no_owner)
    except PgmanError as e:
        audit.log_failure(AuditEventType.BACKUP_RESTORE, "database", name, e.message)
        handle_error(e)

    if not ctx.dry_run:
        audit.log_success(AuditEventType.BACKUP_RESTORE, "database", name,
                          parameters={"input": str(input_path)})


def restore_artifact(
    ctx: ExecutionContext,
    database: DatabaseConfig,
    artifact: Path,
    target: Optional[str],
) -> None:
    """Restore a downloaded snapshot, or tell the operator where it is."""
    if target is None:
        console.print(str(artifact))
        console.hint(f"Restore it with: pgman restore <database> {artifact}")
        return

    audit = get_audit(ctx)
    try:
        restore_snapshot(ctx, database, artifact, target)
    except PgmanError as e:
        audit.log_failure(AuditEventType.BACKUP_RESTORE, "database", target, e.message)
        console.warn(f"Downloaded snapshot kept at {artifact}")
        handle_error(e)

    audit.log_success(AuditEventType.BACKUP_RESTORE, "database", target,
                      parameters={"input": str(artifact)})
