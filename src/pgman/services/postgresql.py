"""PostgreSQL service abstraction.

Provides a safe interface for connection tests and database administration
against the server described by a DatabaseConfig. Identifiers are
interpolated server-side with format(%I).
"""

from typing import Optional

from pgman.core.context import ExecutionContext
from pgman.core.executor import CommandExecutor
from pgman.core.exceptions import ExecutionError, PostgresError
from pgman.core.validation import validate_database_name
from pgman.models import DatabaseConfig


CONNECTION_TEST_TIMEOUT = 15


class PostgreSQLService:
    """Safe interface for PostgreSQL operations.

    All operations:
    - Respect dry-run mode
    - Pass identifiers through format(%I)
    - Keep the password in the environment, never on the command line
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        db: DatabaseConfig,
        *,
        admin_db: str = "postgres",
    ) -> None:
        """Initialize PostgreSQL service.

        Args:
            ctx: Execution context
            executor: Command executor
            db: Connection settings
            admin_db: Database to connect to for administrative statements
        """
        self.ctx = ctx
        self.executor = executor
        self.db = db
        self.admin_db = admin_db

    def _admin_connection(self) -> list[str]:
        return self.db.connection_args(database=self.admin_db)

    def test_connection(self, *, quiet: bool = True) -> str:
        """Connect and return the server version string.

        Args:
            quiet: Don't print progress (the browser owns the screen)

        Raises:
            PostgresError: If the server cannot be reached
        """
        try:
            version = self.executor.run_sql(
                "SELECT version();",
                connection=self.db.connection_args(),
                env=self.db.environment(),
                timeout=CONNECTION_TEST_TIMEOUT,
                quiet=quiet,
            )
        except ExecutionError as e:
            reason = e.stderr or e.message
            raise PostgresError(
                f"Failed to connect to PostgreSQL at {self.db.host}:{self.db.port}: {reason}",
                details=e.details,
                hint="Check host, port, credentials and SSL settings",
            ) from e
        return version or "unknown version"

    def list_databases(self) -> list[str]:
        """Names of all non-template databases."""
        if self.ctx.dry_run:
            return []

        output = self.executor.run_sql(
            "SELECT datname FROM pg_database WHERE datistemplate = false ORDER BY datname;",
            connection=self._admin_connection(),
            env=self.db.environment(),
        )
        return [line for line in output.splitlines() if line]

    def database_exists(self, name: str) -> bool:
        if self.ctx.dry_run:
            return False
        return name in self.list_databases()

    def create_database(self, name: str, *, owner: Optional[str] = None) -> None:
        """Create a database.

        Raises:
            PostgresError: If it already exists or creation fails
        """
        validate_database_name(name)
        if self.database_exists(name):
            raise PostgresError(
                f"Database '{name}' already exists",
                hint="Choose another name or drop it first",
            )

        format_args = {"db_name": name}
        sql = "CREATE DATABASE %I"
        if owner:
            sql += " OWNER %I"
            format_args["owner"] = owner

        try:
            self.executor.run_sql_format(
                sql,
                connection=self._admin_connection(),
                env=self.db.environment(),
                description=f"Create database '{name}'",
                **format_args,
            )
        except ExecutionError as e:
            raise PostgresError(
                f"Failed to create database '{name}'",
                details=e.details,
            ) from e

    def clone_database(self, name: str, *, target: Optional[str] = None) -> str:
        """Create '<name>-clone' (or target) from name as a template.

        Returns:
            Name of the new database

        Raises:
            PostgresError: If the source is missing or cloning fails
        """
        validate_database_name(name)
        new_name = target or f"{name}-clone"
        validate_database_name(new_name)

        if not self.ctx.dry_run and not self.database_exists(name):
            raise PostgresError(f"Database '{name}' does not exist")

        try:
            self.executor.run_sql_format(
                "CREATE DATABASE %I WITH TEMPLATE %I",
                connection=self._admin_connection(),
                env=self.db.environment(),
                description=f"Clone database '{name}' to '{new_name}'",
                db_name=new_name,
                template=name,
            )
        except ExecutionError as e:
            raise PostgresError(
                f"Failed to clone database '{name}'",
                details=e.details,
                hint="The source database must have no other active connections",
            ) from e
        return new_name

    def drop_database(self, name: str, *, force: bool = True) -> None:
        """Drop a database, terminating its connections when force is set.

        Raises:
            PostgresError: If dropping fails
        """
        validate_database_name(name)
        sql = "DROP DATABASE %I WITH (FORCE)" if force else "DROP DATABASE %I"
        try:
            self.executor.run_sql_format(
                sql,
                connection=self._admin_connection(),
                env=self.db.environment(),
                description=f"Drop database '{name}'",
                db_name=name,
            )
        except ExecutionError as e:
            raise PostgresError(
                f"Failed to drop database '{name}'",
                details=e.details,
            ) from e
