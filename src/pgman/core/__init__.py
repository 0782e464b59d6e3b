"""Core framework components for pgman."""

from pgman.core.exceptions import (
    PgmanError,
    ConfigurationError,
    ValidationError,
    ExecutionError,
    PrerequisiteError,
    PostgresError,
    BackupError,
    StoreError,
    TransferError,
)

from pgman.core.context import ExecutionContext, create_context
from pgman.core.output import console, Console, Verbosity
from pgman.core.config import AppConfig, PgmanConfig
from pgman.core.audit import AuditLogger, AuditEvent, AuditEventType, AuditResult, get_audit_logger
from pgman.core.executor import CommandExecutor, CommandResult

__all__ = [
    # Exceptions
    "PgmanError",
    "ConfigurationError",
    "ValidationError",
    "ExecutionError",
    "PrerequisiteError",
    "PostgresError",
    "BackupError",
    "StoreError",
    "TransferError",
    # Context
    "ExecutionContext",
    "create_context",
    # Output
    "console",
    "Console",
    "Verbosity",
    # Config
    "AppConfig",
    "PgmanConfig",
    # Audit
    "AuditLogger",
    "AuditEvent",
    "AuditEventType",
    "AuditResult",
    "get_audit_logger",
    # Executor
    "CommandExecutor",
    "CommandResult",
]
