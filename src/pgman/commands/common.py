"""Options and helpers shared by command modules.

Connection settings are resolved per field: command-line option, then
PGMAN_* environment variable (handled by Typer), then the config file.
Secrets never come from the config file.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from pgman.core.audit import AuditLogger, configure_audit_logger
from pgman.core.config import DEFAULT_CONFIG_PATH, AppConfig
from pgman.core.context import ExecutionContext
from pgman.core.exceptions import PgmanError
from pgman.core.output import console
from pgman.models import DatabaseConfig, ObjectStoreConfig


# Global options
DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Preview changes without executing. Shows what would happen.",
        is_flag=True,
    ),
]

YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Skip confirmation prompts.",
        is_flag=True,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase output verbosity. Can be repeated (-v, -vv).",
    ),
]

NoColorOption = Annotated[
    bool,
    typer.Option(
        "--no-color",
        help="Disable colored output.",
        is_flag=True,
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help=f"Path to configuration file. Default: {DEFAULT_CONFIG_PATH}",
        exists=False,
        file_okay=True,
        dir_okay=False,
    ),
]

# Object store options
BucketOption = Annotated[
    Optional[str],
    typer.Option("--bucket", envvar="PGMAN_BUCKET", help="Bucket holding the backups"),
]
RegionOption = Annotated[
    Optional[str],
    typer.Option("--region", envvar="PGMAN_REGION", help="Object store region"),
]
PrefixOption = Annotated[
    Optional[str],
    typer.Option("--prefix", envvar="PGMAN_PREFIX", help="Only list keys under this prefix"),
]
EndpointOption = Annotated[
    Optional[str],
    typer.Option(
        "--endpoint",
        envvar="PGMAN_ENDPOINT",
        help="Endpoint URL (http:// is assumed when no scheme is given)",
    ),
]
AccessKeyOption = Annotated[
    Optional[str],
    typer.Option("--access-key-id", envvar="PGMAN_ACCESS_KEY_ID", help="Access key id"),
]
SecretKeyOption = Annotated[
    Optional[str],
    typer.Option(
        "--secret-access-key",
        envvar="PGMAN_SECRET_ACCESS_KEY",
        help="Secret access key",
        show_default=False,
    ),
]
PathStyleOption = Annotated[
    Optional[bool],
    typer.Option(
        "--path-style/--virtual-host-style",
        envvar="PGMAN_PATH_STYLE",
        help="Use path-style addressing (MinIO and most self-hosted stores)",
        show_default=False,
    ),
]

# PostgreSQL options
HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-H", envvar="PGMAN_PG_HOST", help="PostgreSQL host"),
]
PortOption = Annotated[
    Optional[int],
    typer.Option("--port", "-p", envvar="PGMAN_PG_PORT", min=1, max=65535, help="PostgreSQL port"),
]
UsernameOption = Annotated[
    Optional[str],
    typer.Option("--username", "-U", envvar="PGMAN_PG_USER", help="PostgreSQL user"),
]
PasswordOption = Annotated[
    Optional[str],
    typer.Option(
        "--password",
        envvar="PGMAN_PG_PASSWORD",
        help="PostgreSQL password",
        show_default=False,
    ),
]
SslOption = Annotated[
    Optional[bool],
    typer.Option(
        "--ssl/--no-ssl",
        envvar="PGMAN_PG_SSL",
        help="Require TLS for PostgreSQL connections",
        show_default=False,
    ),
]
DatabaseOption = Annotated[
    Optional[str],
    typer.Option("--database", "-d", envvar="PGMAN_PG_DATABASE", help="Database for connection tests"),
]


def _pick(option, fallback):
    return fallback if option is None else option


def build_store_config(
    app_config: AppConfig,
    *,
    bucket: Optional[str] = None,
    region: Optional[str] = None,
    prefix: Optional[str] = None,
    endpoint: Optional[str] = None,
    access_key_id: Optional[str] = None,
    secret_access_key: Optional[str] = None,
    path_style: Optional[bool] = None,
) -> ObjectStoreConfig:
    """Merge command-line values over the config file and secrets."""
    settings = app_config.store
    secrets = app_config.secrets
    return ObjectStoreConfig(
        bucket=_pick(bucket, settings.bucket),
        region=_pick(region, settings.region),
        prefix=_pick(prefix, settings.prefix),
        endpoint=_pick(endpoint, settings.endpoint),
        access_key_id=_pick(access_key_id, secrets.access_key_id) or "",
        secret_access_key=_pick(secret_access_key, secrets.secret_access_key) or "",
        path_style=_pick(path_style, settings.path_style),
    )


def build_database_config(
    app_config: AppConfig,
    *,
    host: Optional[str] = None,
    port: Optional[int] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    use_ssl: Optional[bool] = None,
    database: Optional[str] = None,
) -> DatabaseConfig:
    """Merge command-line values over the config file and secrets."""
    settings = app_config.postgres
    return DatabaseConfig(
        host=_pick(host, settings.host),
        port=_pick(port, settings.port),
        username=_pick(username, settings.username),
        password=_pick(password, app_config.secrets.pg_password),
        use_ssl=_pick(use_ssl, settings.use_ssl),
        database=_pick(database, settings.database),
    )


def handle_error(error: PgmanError) -> None:
    """Handle a PgmanError by printing formatted error and exiting."""
    console.error(error.message)

    if error.details:
        for detail in error.details:
            console.print(f"  [dim]{detail}[/dim]")

    if error.hint:
        console.hint(error.hint)

    raise typer.Exit(error.exit_code)


def get_audit(ctx: ExecutionContext) -> AuditLogger:
    """Audit logger writing to the configured log path."""
    try:
        log_path = ctx.config.audit_log_path
    except PgmanError as e:
        handle_error(e)
    return configure_audit_logger(log_path)
