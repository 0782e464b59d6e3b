"""Database management commands.

Commands:
- pgman db list
- pgman db create
- pgman db clone
- pgman db drop
"""

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
    YesOption,
    build_database_config,
    get_audit,
    handle_error,
)
from pgman.core import (
    AuditEventType,
    CommandExecutor,
    ExecutionContext,
    PgmanError,
    console,
    create_context,
)
from pgman.services.postgresql import PostgreSQLService


app = typer.Typer(
    name="db",
    help="PostgreSQL database management.",
    no_args_is_help=True,
)


def _get_service(
    ctx: ExecutionContext,
    host: Optional[str],
    port: Optional[int],
    username: Optional[str],
    password: Optional[str],
    ssl: Optional[bool],
) -> PostgreSQLService:
    """Create the service for the resolved connection settings."""
    database = build_database_config(
        ctx.config,
        host=host,
        port=port,
        username=username,
        password=password,
        use_ssl=ssl,
    )
    return PostgreSQLService(ctx, CommandExecutor(ctx), database)


@app.command("list")
def list_databases(
    host: HostOption = None,
    port: PortOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    ssl: SslOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """List databases on the server."""
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        pg = _get_service(ctx, host, port, username, password, ssl)
        names = pg.list_databases()
    except PgmanError as e:
        handle_error(e)

    if not names:
        console.info("No databases found")
        return

    console.table("Databases", ["Name"], [[name] for name in names])


@app.command("create")
def create_database(
    name: str = typer.Argument(..., help="Database name"),
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner role (existing)"),
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
    """Create a database.

    Examples:

        pgman db create myapp

        pgman db create myapp -o app_owner
    """
    ctx = create_context(dry_run=dry_run, verbose=verbose, no_color=no_color, config=config)
    audit = get_audit(ctx)

    try:
        pg = _get_service(ctx, host, port, username, password, ssl)
        pg.create_database(name, owner=owner)
    except PgmanError as e:
        audit.log_failure(AuditEventType.DATABASE_CREATE, "database", name, e.message)
        handle_error(e)

    if not ctx.dry_run:
        audit.log_success(AuditEventType.DATABASE_CREATE, "database", name,
                          parameters={"owner": owner})
        console.success(f"Database '{name}' created")


@app.command("clone")
def clone_database(
    name: str = typer.Argument(..., help="Source database"),
    target: Optional[str] = typer.Option(
        None, "--target", "-t",
        help="Name of the copy (default: <name>-clone)",
    ),
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
    """Copy a database using it as a template.

    The source must have no other open connections while it is copied.
    """
    ctx = create_context(dry_run=dry_run, verbose=verbose, no_color=no_color, config=config)
    audit = get_audit(ctx)

    try:
        pg = _get_service(ctx, host, port, username, password, ssl)
        new_name = pg.clone_database(name, target=target)
    except PgmanError as e:
        audit.log_failure(AuditEventType.DATABASE_CLONE, "database", name, e.message)
        handle_error(e)

    if not ctx.dry_run:
        audit.log_success(AuditEventType.DATABASE_CLONE, "database", name,
                          parameters={"target": new_name})
        console.success(f"Database '{name}' cloned to '{new_name}'")


@app.command("drop")
def drop_database(
    name: str = typer.Argument(..., help="Database to drop"),
    no_force: bool = typer.Option(
        False, "--no-force",
        help="Fail instead of terminating open connections",
    ),
    host: HostOption = None,
    port: PortOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    ssl: SslOption = None,
    config: ConfigOption = None,
    dry_run: DryRunOption = False,
    yes: YesOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Drop a database.

    Open connections are terminated unless --no-force is given.
    """
    ctx = create_context(dry_run=dry_run, yes=yes, verbose=verbose, no_color=no_color, config=config)
    audit = get_audit(ctx)

    if not ctx.yes and not ctx.dry_run:
        if not console.confirm(f"Drop database '{name}'? This cannot be undone"):
            console.info("Aborted")
            raise typer.Exit(0)

    try:
        pg = _get_service(ctx, host, port, username, password, ssl)
        pg.drop_database(name, force=not no_force)
    except PgmanError as e:
        audit.log_failure(AuditEventType.DATABASE_DROP, "database", name, e.message)
        handle_error(e)

    if not ctx.dry_run:
        audit.log_success(AuditEventType.DATABASE_DROP, "database", name)
        console.success(f"Database '{name}' dropped")
