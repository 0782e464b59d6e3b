"""Service abstractions for the object store and PostgreSQL client tools."""

from pgman.services.pgdump import PgDumpService
from pgman.services.postgresql import PostgreSQLService
from pgman.services.s3 import ObjectStoreGateway, ObjectStream

__all__ = [
    "PgDumpService",
    "PostgreSQLService",
    "ObjectStoreGateway",
    "ObjectStream",
]
