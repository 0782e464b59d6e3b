"""pgman settings: a YAML file for connection details, the environment for secrets.

The file is only ever read. Values edited in the snapshot browser live for
the session and are never written back.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pgman.core.exceptions import ConfigurationError
from pgman.core.validation import validate_port


# Default configuration paths
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "pgman" / "config.yaml"
DEFAULT_STATE_DIR = Path.home() / ".local" / "state" / "pgman"

DEFAULT_CHUNK_SIZE = 1024 * 1024


class StoreSettings(BaseModel):
    """Object store connection settings (credentials come from the environment)."""

    bucket: str = ""
    region: str = ""
    prefix: str = ""
    endpoint: str = ""
    path_style: bool = False


class PostgresSettings(BaseModel):
    """PostgreSQL connection settings (password comes from the environment)."""

    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    database: Optional[str] = None
    use_ssl: bool = False

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        return validate_port(v)


class BrowserSettings(BaseModel):
    """Snapshot browser tuning."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    poll_interval_ms: int = 100
    success_hold_seconds: float = 1.0
    download_dir: Optional[Path] = None

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v < 1024:
            raise ValueError("chunk_size must be at least 1024 bytes")
        return v

    @field_validator("poll_interval_ms")
    @classmethod
    def validate_poll_interval(cls, v: int) -> int:
        if not 10 <= v <= 1000:
            raise ValueError("poll_interval_ms must be between 10 and 1000")
        return v


class PgmanConfig(BaseModel):
    """Root configuration model loaded from config.yaml."""

    store: StoreSettings = Field(default_factory=StoreSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    audit_log: Optional[Path] = None

    @classmethod
    def load(cls, path: Path) -> "PgmanConfig":
        """Parse and validate ``path``.

        Raises ConfigurationError when the file is missing, unreadable,
        not YAML, or rejected by the models.
        """
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                hint="Print a starting point with: pgman config example",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}",
                details=[str(e)],
            ) from e
        except PermissionError:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                hint="Check file permissions",
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {path}",
            )

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(
                f"Invalid configuration: {path}",
                details=[str(e)],
            ) from e

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "PgmanConfig":
        """Load configuration, falling back to defaults if file doesn't exist."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if path.exists():
            return cls.load(path)
        return cls()

    def to_yaml(self) -> str:
        """Dump the non-empty settings back to YAML for `pgman config show`."""
        data = self.model_dump(mode="json", exclude_none=True)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)


class SecretsConfig(BaseSettings):
    """Credentials read from PGMAN_* environment variables or a local .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    access_key_id: Optional[str] = Field(None, alias="PGMAN_ACCESS_KEY_ID")
    secret_access_key: Optional[str] = Field(None, alias="PGMAN_SECRET_ACCESS_KEY")
    pg_password: Optional[str] = Field(None, alias="PGMAN_PG_PASSWORD")


class AppConfig:
    """Application configuration combining config file and secrets."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[PgmanConfig] = None,
        secrets: Optional[SecretsConfig] = None,
    ) -> None:
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = config or PgmanConfig.load_or_default(self.config_path)
        self._secrets = secrets or SecretsConfig()

    @property
    def config(self) -> PgmanConfig:
        return self._config

    @property
    def secrets(self) -> SecretsConfig:
        return self._secrets

    @property
    def store(self) -> StoreSettings:
        return self._config.store

    @property
    def postgres(self) -> PostgresSettings:
        return self._config.postgres

    @property
    def browser(self) -> BrowserSettings:
        return self._config.browser

    @property
    def audit_log_path(self) -> Path:
        return self._config.audit_log or DEFAULT_STATE_DIR / "audit.log"


def get_example_config() -> str:
    """Commented config.yaml printed by `pgman config example`."""
    return """# pgman configuration
# Secrets are loaded from environment variables, NOT stored here:
#   PGMAN_ACCESS_KEY_ID, PGMAN_SECRET_ACCESS_KEY, PGMAN_PG_PASSWORD

# Object store holding the backups
store:
  bucket: my-backups
  region: us-east-1
  prefix: pg-exports/
  endpoint: https://s3.us-east-1.amazonaws.com
  path_style: false  # true for MinIO and most self-hosted stores

# PostgreSQL server used for connection tests and restores
postgres:
  host: 127.0.0.1
  port: 5432
  username: postgres
  use_ssl: false

# Snapshot browser
browser:
  chunk_size: 1048576  # bytes read per download step
  poll_interval_ms: 100
  success_hold_seconds: 1.0
  # download_dir: /var/tmp

# audit_log: ~/.local/state/pgman/audit.log
"""
