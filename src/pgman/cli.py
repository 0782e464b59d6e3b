"""pgman command-line entry point.

Top-level commands (browse, dump, restore) and the ``db`` and ``config``
groups are assembled here; each lives in ``pgman.commands``.
"""

from typing import Annotated

import typer

from pgman import __version__
from pgman.commands.backup import dump_command, restore_command
from pgman.commands.browse import browse_command
from pgman.commands.common import ConfigOption, NoColorOption, VerboseOption, handle_error
from pgman.commands.db import app as db_app
from pgman.core.config import get_example_config
from pgman.core.context import create_context
from pgman.core.exceptions import PgmanError
from pgman.core.output import console


app = typer.Typer(
    name="pgman",
    help="PostgreSQL backup manager - browse, download and restore snapshots.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
)

config_app = typer.Typer(name="config", help="Inspect the pgman configuration.", no_args_is_help=True)

app.command("browse")(browse_command)
app.command("dump")(dump_command)
app.command("restore")(restore_command)
app.add_typer(db_app, name="db")
app.add_typer(config_app, name="config")


def _show_version(value: bool) -> None:
    if value:
        console.print(f"pgman version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-V", callback=_show_version, is_eager=True,
                     help="Show version and exit."),
    ] = False,
) -> None:
    """Browse Postgres snapshots in an S3-compatible bucket, download and restore them.

    [bold]Examples:[/bold]
        pgman browse --bucket backups --region us-east-1 --endpoint s3.example.com
        pgman db list
        pgman db clone myapp
        pgman dump myapp myapp.dump
        pgman restore myapp_copy myapp.dump
        pgman config show
    """


@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Print the effective configuration and which secrets are set.

    Secret values themselves are never printed.
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)
    try:
        loaded = ctx.config
    except PgmanError as e:
        handle_error(e)
        return

    ctx.console.print(f"\n[bold]Configuration file:[/bold] {ctx.config_path}")
    ctx.console.print(f"[bold]File exists:[/bold] {ctx.config_path.exists()}\n")
    ctx.console.yaml(loaded.config.to_yaml())

    secrets = loaded.secrets
    ctx.console.summary("Secrets (from environment)", {
        "PGMAN_ACCESS_KEY_ID": bool(secrets.access_key_id),
        "PGMAN_SECRET_ACCESS_KEY": bool(secrets.secret_access_key),
        "PGMAN_PG_PASSWORD": bool(secrets.pg_password),
    })


@config_app.command("example")
def config_example(no_color: NoColorOption = False) -> None:
    """Print a commented example config file to start from."""
    ctx = create_context(no_color=no_color)
    ctx.console.print(get_example_config(), markup=False)


if __name__ == "__main__":
    app()
