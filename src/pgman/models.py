"""Connection settings and snapshot metadata shared by the browser and services."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pgman.core.exceptions import ValidationError


SECRET_SEPARATOR = "....."
SECRET_FULL_MASK_LENGTH = 8


def mask_secret(value: str) -> str:
    """Mask a secret for display.

    Short secrets are fully starred; longer ones keep the first and last
    four characters.
    """
    if len(value) <= SECRET_FULL_MASK_LENGTH:
        return "*" * len(value)
    return f"{value[:4]}{SECRET_SEPARATOR}{value[-4:]}"


@dataclass
class ObjectStoreConfig:
    """Object store connection settings.

    The five client fields (bucket, region, endpoint, access key id and
    secret access key) must all be non-empty before a client is built.
    """

    bucket: str = ""
    region: str = ""
    prefix: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    path_style: bool = False
    last_error: Optional[str] = None

    # (attribute, label) in validation order
    CLIENT_FIELDS = (
        ("bucket", "bucket"),
        ("region", "region"),
        ("endpoint", "endpoint"),
        ("access_key_id", "access key id"),
        ("secret_access_key", "secret access key"),
    )

    def validate(self) -> None:
        """Check every client field is set.

        Raises:
            ValidationError: Naming the first empty field
        """
        for attr, label in self.CLIENT_FIELDS:
            if not getattr(self, attr):
                raise ValidationError(
                    f"{label[0].upper()}{label[1:]} is required",
                    field=attr,
                    hint=f"Select the {label} field and press 'e' to edit it",
                )

    def build_uri(self, key: str) -> str:
        """Build full S3 URI for display."""
        return f"s3://{self.bucket}/{key}"


@dataclass
class DatabaseConfig:
    """PostgreSQL connection settings used for tests and restores."""

    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = False
    database: Optional[str] = None

    def validate(self) -> None:
        """Check the settings needed to reach a server.

        Raises:
            ValidationError: If host, port or username is missing
        """
        if not self.host:
            raise ValidationError("PostgreSQL host is required", field="host")
        if self.port is None:
            raise ValidationError("PostgreSQL port is required", field="port")
        if not self.username:
            raise ValidationError("PostgreSQL username is required", field="username")

    def connection_args(self, database: Optional[str] = None) -> list[str]:
        """psql/pg_dump/pg_restore connection flags; unset values fall back to libpq defaults."""
        args: list[str] = []
        if self.host:
            args.extend(["-h", self.host])
        if self.port is not None:
            args.extend(["-p", str(self.port)])
        if self.username:
            args.extend(["-U", self.username])
        target = database or self.database
        if target:
            args.extend(["-d", target])
        return args

    def environment(self) -> dict[str, str]:
        """Environment passed to client tools (kept off the command line)."""
        env = {"PGCONNECT_TIMEOUT": "10"}
        if self.password:
            env["PGPASSWORD"] = self.password
        if self.use_ssl:
            env["PGSSLMODE"] = "require"
        return env

    def connection_string(self) -> str:
        """libpq keyword/value string with the password masked."""
        parts = []
        if self.host:
            parts.append(f"host={self.host}")
        if self.port is not None:
            parts.append(f"port={self.port}")
        if self.username:
            parts.append(f"user={self.username}")
        if self.password:
            parts.append(f"password={mask_secret(self.password)}")
        if self.use_ssl:
            parts.append("sslmode=require")
        if self.database:
            parts.append(f"dbname={self.database}")
        return " ".join(parts)


@dataclass(frozen=True)
class SnapshotMetadata:
    """A backup object as listed in the store."""

    key: str
    size: int
    last_modified: datetime

    @property
    def name(self) -> str:
        """Get the object name (last part of key)."""
        return self.key.rsplit("/", 1)[-1]

    @property
    def size_mb(self) -> float:
        return self.size / 1024 / 1024
