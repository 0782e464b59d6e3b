"""Unit tests for the PostgreSQL and pg_dump services."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pgman.core.context import ExecutionContext
from pgman.core.exceptions import BackupError, ExecutionError, PostgresError, ValidationError
from pgman.core.executor import CommandResult
from pgman.models import DatabaseConfig
from pgman.services.pgdump import PgDumpService, format_bytes
from pgman.services.postgresql import PostgreSQLService


@pytest.fixture
def ctx():
    return ExecutionContext(verbosity=0)


@pytest.fixture
def db():
    return DatabaseConfig(host="db", port=5432, username="admin", password="hunter22", use_ssl=True)


@pytest.fixture
def executor():
    return MagicMock()


class TestTestConnection:
    """Tests for PostgreSQLService.test_connection."""

    def test_returns_version(self, ctx, executor, db):
        executor.run_sql.return_value = "PostgreSQL 16.2 on x86_64"
        service = PostgreSQLService(ctx, executor, db)

        assert service.test_connection() == "PostgreSQL 16.2 on x86_64"

        kwargs = executor.run_sql.call_args.kwargs
        assert kwargs["connection"] == ["-h", "db", "-p", "5432", "-U", "admin"]
        assert kwargs["env"]["PGPASSWORD"] == "hunter22"
        assert kwargs["env"]["PGSSLMODE"] == "require"
        assert kwargs["quiet"] is True

    def test_failure_names_server(self, ctx, executor, db):
        executor.run_sql.side_effect = ExecutionError(
            "Command failed", stderr="could not connect: Connection refused",
        )
        service = PostgreSQLService(ctx, executor, db)

        with pytest.raises(PostgresError) as exc:
            service.test_connection()

        assert "db:5432" in str(exc.value)
        assert "Connection refused" in str(exc.value)


class TestDatabaseAdministration:
    """Tests for create, clone, drop and list."""

    def test_list_databases(self, ctx, executor, db):
        executor.run_sql.return_value = "app\npostgres\n"
        service = PostgreSQLService(ctx, executor, db)
        assert service.list_databases() == ["app", "postgres"]
        assert executor.run_sql.call_args.kwargs["connection"][-2:] == ["-d", "postgres"]

    def test_list_databases_dry_run(self, executor, db):
        service = PostgreSQLService(ExecutionContext(dry_run=True, verbosity=0), executor, db)
        assert service.list_databases() == []
        executor.run_sql.assert_not_called()

    def test_create(self, ctx, executor, db):
        executor.run_sql.return_value = "postgres"
        service = PostgreSQLService(ctx, executor, db)

        service.create_database("restored", owner="app")

        args, kwargs = executor.run_sql_format.call_args
        assert args[0] == "CREATE DATABASE %I OWNER %I"
        assert kwargs["db_name"] == "restored"
        assert kwargs["owner"] == "app"

    def test_create_existing(self, ctx, executor, db):
        executor.run_sql.return_value = "restored"
        service = PostgreSQLService(ctx, executor, db)
        with pytest.raises(PostgresError, match="already exists"):
            service.create_database("restored")
        executor.run_sql_format.assert_not_called()

    def test_create_invalid_name(self, ctx, executor, db):
        service = PostgreSQLService(ctx, executor, db)
        with pytest.raises(ValidationError):
            service.create_database("bad;name")

    def test_clone_default_name(self, ctx, executor, db):
        executor.run_sql.return_value = "app"
        service = PostgreSQLService(ctx, executor, db)

        assert service.clone_database("app") == "app-clone"

        args, kwargs = executor.run_sql_format.call_args
        assert args[0] == "CREATE DATABASE %I WITH TEMPLATE %I"
        assert kwargs["db_name"] == "app-clone"
        assert kwargs["template"] == "app"

    def test_clone_missing_source(self, ctx, executor, db):
        executor.run_sql.return_value = "postgres"
        service = PostgreSQLService(ctx, executor, db)
        with pytest.raises(PostgresError, match="does not exist"):
            service.clone_database("app")

    def test_drop_force(self, ctx, executor, db):
        service = PostgreSQLService(ctx, executor, db)
        service.drop_database("app")
        assert executor.run_sql_format.call_args.args[0] == "DROP DATABASE %I WITH (FORCE)"

        service.drop_database("app", force=False)
        assert executor.run_sql_format.call_args.args[0] == "DROP DATABASE %I"

    def test_drop_failure(self, ctx, executor, db):
        executor.run_sql_format.side_effect = ExecutionError("Command failed")
        service = PostgreSQLService(ctx, executor, db)
        with pytest.raises(PostgresError, match="Failed to drop"):
            service.drop_database("app")


class TestPgDumpService:
    """Tests for dump and restore."""

    def test_commands_available(self, ctx, executor, db):
        service = PgDumpService(ctx, executor, db)
        with patch("pgman.services.pgdump.shutil.which", side_effect=lambda cmd: None if cmd == "pg_restore" else f"/usr/bin/{cmd}"):
            ok, missing = service.check_commands_available()
        assert not ok
        assert missing == ["pg_restore"]

    def test_dump(self, ctx, executor, db, tmp_path):
        service = PgDumpService(ctx, executor, db)
        output = tmp_path / "app.dump"

        assert service.dump_database("app", output) == output

        cmd = executor.run.call_args.args[0]
        assert cmd[0] == "pg_dump"
        assert ["-d", "app"] == cmd[cmd.index("-d"):cmd.index("-d") + 2]
        assert "--format=custom" in cmd
        assert str(output) in cmd
        assert "hunter22" not in cmd

    def test_dump_failure(self, ctx, executor, db, tmp_path):
        executor.run.side_effect = ExecutionError("Command failed")
        service = PgDumpService(ctx, executor, db)
        with pytest.raises(BackupError):
            service.dump_database("app", tmp_path / "app.dump")

    def test_restore_missing_file(self, ctx, executor, db, tmp_path):
        service = PgDumpService(ctx, executor, db)
        with pytest.raises(BackupError, match="not found"):
            service.restore_database(tmp_path / "absent.dump", "app")

    def test_restore(self, ctx, executor, db, tmp_path):
        dump = tmp_path / "pgman-abc.dump"
        dump.write_bytes(b"PGDMP")
        executor.run.return_value = CommandResult(["pg_restore"], 0, "", "")
        service = PgDumpService(ctx, executor, db)

        service.restore_database(dump, "restored", jobs=2, no_owner=True)

        cmd = executor.run.call_args.args[0]
        assert cmd[0] == "pg_restore"
        assert "restored" in cmd
        assert cmd[cmd.index("-j") + 1] == "2"
        assert "--no-owner" in cmd
        assert cmd[-1] == str(dump)

    def test_restore_warnings_tolerated(self, ctx, executor, db, tmp_path):
        dump = tmp_path / "a.dump"
        dump.write_bytes(b"PGDMP")
        executor.run.return_value = CommandResult(
            ["pg_restore"], 1, "", "pg_restore: warning: errors ignored on restore: 0",
        )
        PgDumpService(ctx, executor, db).restore_database(dump, "restored")

    def test_restore_errors_raise(self, ctx, executor, db, tmp_path):
        dump = tmp_path / "a.dump"
        dump.write_bytes(b"PGDMP")
        executor.run.return_value = CommandResult(
            ["pg_restore"], 1, "", "pg_restore: error: could not execute query",
        )
        with pytest.raises(BackupError, match="Failed to restore"):
            PgDumpService(ctx, executor, db).restore_database(dump, "restored")


def test_format_bytes():
    assert format_bytes(512) == "512.0 B"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(3 * 1024 ** 3) == "3.0 GB"


def test_dump_path_type(ctx, executor, db):
    """Paths are passed to pg_dump as strings."""
    PgDumpService(ctx, executor, db).dump_database("app", Path("out.dump"))
    assert "out.dump" in executor.run.call_args.args[0]
