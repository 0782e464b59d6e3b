"""Focus, input mode and popup state for the snapshot browser."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from pgman.models import SnapshotMetadata


class FocusField(Enum):
    """Field or list that receives keyboard input.

    Declaration order is the Tab order; the last field wraps back to the
    snapshot list.
    """

    SNAPSHOT_LIST = "snapshot-list"
    BUCKET = "bucket"
    REGION = "region"
    PREFIX = "prefix"
    ENDPOINT = "endpoint"
    ACCESS_KEY = "access-key"
    SECRET_KEY = "secret-key"
    PATH_STYLE = "path-style"
    DB_HOST = "db-host"
    DB_PORT = "db-port"
    DB_USERNAME = "db-username"
    DB_PASSWORD = "db-password"
    DB_SSL = "db-ssl"
    DB_NAME = "db-name"

    def next(self) -> "FocusField":
        members = list(FocusField)
        return members[(members.index(self) + 1) % len(members)]

    @property
    def is_store_field(self) -> bool:
        return self in STORE_FIELDS

    @property
    def is_database_field(self) -> bool:
        return self in DATABASE_FIELDS

    @property
    def is_secret(self) -> bool:
        return self in SECRET_FIELDS

    @property
    def is_flag(self) -> bool:
        return self in (FocusField.PATH_STYLE, FocusField.DB_SSL)

    @property
    def label(self) -> str:
        return FIELD_LABELS[self]


# FocusField -> attribute on ObjectStoreConfig
STORE_FIELDS = {
    FocusField.BUCKET: "bucket",
    FocusField.REGION: "region",
    FocusField.PREFIX: "prefix",
    FocusField.ENDPOINT: "endpoint",
    FocusField.ACCESS_KEY: "access_key_id",
    FocusField.SECRET_KEY: "secret_access_key",
    FocusField.PATH_STYLE: "path_style",
}

# FocusField -> attribute on DatabaseConfig
DATABASE_FIELDS = {
    FocusField.DB_HOST: "host",
    FocusField.DB_PORT: "port",
    FocusField.DB_USERNAME: "username",
    FocusField.DB_PASSWORD: "password",
    FocusField.DB_SSL: "use_ssl",
    FocusField.DB_NAME: "database",
}

SECRET_FIELDS = frozenset({
    FocusField.ACCESS_KEY,
    FocusField.SECRET_KEY,
    FocusField.DB_PASSWORD,
})

FIELD_LABELS = {
    FocusField.SNAPSHOT_LIST: "Snapshots",
    FocusField.BUCKET: "Bucket",
    FocusField.REGION: "Region",
    FocusField.PREFIX: "Prefix",
    FocusField.ENDPOINT: "Endpoint",
    FocusField.ACCESS_KEY: "Access Key",
    FocusField.SECRET_KEY: "Secret Key",
    FocusField.PATH_STYLE: "Path Style",
    FocusField.DB_HOST: "Host",
    FocusField.DB_PORT: "Port",
    FocusField.DB_USERNAME: "Username",
    FocusField.DB_PASSWORD: "Password",
    FocusField.DB_SSL: "SSL",
    FocusField.DB_NAME: "Database",
}


class InputMode(Enum):
    NORMAL = "normal"
    EDITING = "editing"


class Provider(Enum):
    """Target of a connection test."""

    STORE = "store"
    DATABASE = "database"


@dataclass(frozen=True)
class Hidden:
    pass


@dataclass(frozen=True)
class ConfirmRestore:
    snapshot: SnapshotMetadata


@dataclass(frozen=True)
class Downloading:
    snapshot: SnapshotMetadata
    progress: float
    rate: float


@dataclass(frozen=True)
class ConfirmCancel:
    """Cancel prompt; progress and rate are frozen at the moment it opened."""

    snapshot: SnapshotMetadata
    progress: float
    rate: float


@dataclass(frozen=True)
class ErrorPopup:
    message: str


@dataclass(frozen=True)
class SuccessPopup:
    message: str


@dataclass(frozen=True)
class ConnectionTestResult:
    provider: Provider
    message: str


Popup = Union[
    Hidden,
    ConfirmRestore,
    Downloading,
    ConfirmCancel,
    ErrorPopup,
    SuccessPopup,
    ConnectionTestResult,
]

HIDDEN = Hidden()


def is_transfer_popup(popup: Optional[Popup]) -> bool:
    """True while a transfer is running or waiting on a cancel answer."""
    return isinstance(popup, (Downloading, ConfirmCancel))
