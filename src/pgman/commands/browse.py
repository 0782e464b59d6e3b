"""Interactive snapshot browser command.

pgman browse opens a full-screen browser over the backups in a bucket.
Selecting a snapshot downloads it; the path is printed, or the snapshot is
restored straight away with --restore-to.
"""

import sys
from typing import Optional

import typer
from rich.live import Live

from pgman.browser import BrowserController, SnapshotBrowser
from pgman.browser.terminal import TerminalController
from pgman.commands.backup import restore_artifact
from pgman.commands.common import (
    AccessKeyOption,
    BucketOption,
    ConfigOption,
    DatabaseOption,
    EndpointOption,
    HostOption,
    NoColorOption,
    PasswordOption,
    PathStyleOption,
    PortOption,
    PrefixOption,
    RegionOption,
    SecretKeyOption,
    SslOption,
    UsernameOption,
    VerboseOption,
    build_database_config,
    build_store_config,
    get_audit,
    handle_error,
)
from pgman.core import (
    CommandExecutor,
    ExecutionContext,
    PgmanError,
    PrerequisiteError,
    console,
    create_context,
)
from pgman.core.validation import validate_database_name
from pgman.models import DatabaseConfig
from pgman.services.postgresql import PostgreSQLService


def _database_probe(ctx: ExecutionContext):
    """Connection test used by the browser's 't' key on database fields."""
    executor = CommandExecutor(ctx)

    def probe(database: DatabaseConfig) -> str:
        return PostgreSQLService(ctx, executor, database).test_connection(quiet=True)

    return probe


def browse_command(
    bucket: BucketOption = None,
    region: RegionOption = None,
    prefix: PrefixOption = None,
    endpoint: EndpointOption = None,
    access_key_id: AccessKeyOption = None,
    secret_access_key: SecretKeyOption = None,
    path_style: PathStyleOption = None,
    host: HostOption = None,
    port: PortOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    ssl: SslOption = None,
    database: DatabaseOption = None,
    restore_to: Optional[str] = typer.Option(
        None, "--restore-to",
        help="Restore the downloaded snapshot into this database",
    ),
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Browse backup snapshots in an object store.

    Settings can be edited inside the browser; edits last for the session
    only.

    [bold]Keys:[/bold] Tab next field, e edit, r refresh, t test connection,
    Enter restore the selected snapshot, q quit.

    Examples:

        pgman browse --bucket backups --region us-east-1 --endpoint localhost:9000 --path-style

        pgman browse --restore-to staging
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        app_config = ctx.config
        store_config = build_store_config(
            app_config,
            bucket=bucket,
            region=region,
            prefix=prefix,
            endpoint=endpoint,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            path_style=path_style,
        )
        database_config = build_database_config(
            app_config,
            host=host,
            port=port,
            username=username,
            password=password,
            use_ssl=ssl,
            database=database,
        )
        if restore_to:
            validate_database_name(restore_to)
        if not (sys.stdin.isatty() and sys.stdout.isatty()):
            raise PrerequisiteError(
                "The snapshot browser needs an interactive terminal",
                hint="Run pgman browse from a terminal, not a pipe",
            )
    except PgmanError as e:
        handle_error(e)

    settings = app_config.browser
    audit = get_audit(ctx)
    session = SnapshotBrowser(
        store_config,
        database_config,
        database_probe=_database_probe(ctx),
        audit=audit,
        chunk_size=settings.chunk_size,
        download_dir=settings.download_dir,
    )

    audit.log_session_start("browse", {
        "bucket": store_config.bucket,
        "prefix": store_config.prefix,
        "endpoint": store_config.endpoint,
    })

    terminal = TerminalController(sys.stdin.fileno(), sys.stdout.fileno())
    try:
        with terminal.raw_mode(), Live(
            console=ctx.console.rich,
            screen=True,
            auto_refresh=False,
            redirect_stdout=False,
            redirect_stderr=False,
        ) as live:
            controller = BrowserController(
                session,
                terminal.read_key,
                lambda frame: live.update(frame, refresh=True),
                poll_interval_ms=settings.poll_interval_ms,
                success_hold_seconds=settings.success_hold_seconds,
            )
            result = controller.run()
    except KeyboardInterrupt:
        session.abort_download()
        audit.log_session_end("browse")
        console.warn("Interrupted")
        raise typer.Exit(130)

    artifact = str(result.artifact_path) if result.artifact_path else None
    audit.log_session_end("browse", artifact)

    if result.artifact_path is None:
        console.info("No snapshot downloaded")
        return

    console.success(f"Snapshot downloaded to {result.artifact_path}")
    restore_artifact(ctx, result.database, result.artifact_path, restore_to)
