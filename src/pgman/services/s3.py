"""S3-compatible object store gateway for backup snapshots.

Thin binding over boto3 used by the snapshot browser:
- a single, unpaginated listing under an optional prefix
- streamed object fetch with the reported total length
- bucket enumeration for connection tests

Supports AWS S3, Backblaze B2, MinIO and any S3-compatible store
(path-style addressing for the latter).
"""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from pgman.core.exceptions import StoreError
from pgman.core.validation import normalize_endpoint
from pgman.models import ObjectStoreConfig


# Entry as returned by list_objects: size/last_modified may be None
ObjectEntry = dict[str, Any]


def _provider_message(error: Exception) -> str:
    """Extract the provider's own message from a botocore error."""
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        code = err.get("Code")
        message = err.get("Message") or str(error)
        return f"{code}: {message}" if code else message
    return str(error)


@dataclass
class ObjectStream:
    """An object body being fetched, with its total length if reported."""

    key: str
    total_length: Optional[int]
    body: Any

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        """Yield the body in chunks of at most chunk_size bytes."""
        try:
            for chunk in self.body.iter_chunks(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        except (BotoCoreError, ClientError) as e:
            raise StoreError(
                f"Failed to read {self.key}: {_provider_message(e)}",
                details=[str(e)],
            ) from e

    def close(self) -> None:
        self.body.close()


class ObjectStoreGateway:
    """Object store operations used by the snapshot browser.

    Every provider failure is raised as StoreError carrying the provider's
    message.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: ObjectStoreConfig) -> "ObjectStoreGateway":
        """Build a client bound to the config's region, endpoint, credentials and addressing style.

        The caller validates the config first.

        Raises:
            ValidationError: If the endpoint has no host
            StoreError: If botocore rejects the settings
        """
        endpoint_url = normalize_endpoint(config.endpoint)
        try:
            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=config.region,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                config=BotoConfig(
                    s3={"addressing_style": "path" if config.path_style else "auto"},
                    retries={"max_attempts": 3, "mode": "standard"},
                    connect_timeout=30,
                    read_timeout=60,
                ),
            )
        except (BotoCoreError, ValueError) as e:
            raise StoreError(
                f"Failed to initialize S3 client: {e}",
                details=[f"Endpoint: {endpoint_url}"],
            ) from e
        return cls(client)

    def list_objects(self, bucket: str, prefix: str = "") -> list[ObjectEntry]:
        """List objects in a bucket with one call.

        Args:
            bucket: Bucket name
            prefix: Key prefix filter (empty for none)

        Returns:
            Entries with key, size and last_modified (None when the provider omits them)

        Raises:
            StoreError: If the listing fails
        """
        kwargs = {"Bucket": bucket}
        if prefix:
            kwargs["Prefix"] = prefix

        try:
            response = self._client.list_objects_v2(**kwargs)
        except (BotoCoreError, ClientError) as e:
            raise StoreError(
                f"Failed to list objects: {_provider_message(e)}",
                details=[str(e)],
            ) from e

        return [
            {
                "key": obj.get("Key"),
                "size": obj.get("Size"),
                "last_modified": obj.get("LastModified"),
            }
            for obj in response.get("Contents", [])
            if obj.get("Key")
        ]

    def open_object(self, bucket: str, key: str) -> ObjectStream:
        """Start fetching an object.

        Raises:
            StoreError: If the request fails
        """
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StoreError(
                f"Failed to download backup: {_provider_message(e)}",
                details=[str(e)],
            ) from e

        return ObjectStream(
            key=key,
            total_length=response.get("ContentLength"),
            body=response["Body"],
        )

    def list_buckets(self) -> list[str]:
        """Names of the buckets visible with the configured credentials.

        Raises:
            StoreError: If the call fails
        """
        try:
            response = self._client.list_buckets()
        except (BotoCoreError, ClientError) as e:
            raise StoreError(
                f"Failed to connect to S3: {_provider_message(e)}",
                details=[str(e)],
            ) from e
        return [b["Name"] for b in response.get("Buckets", []) if b.get("Name")]
