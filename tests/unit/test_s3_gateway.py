"""Unit tests for the S3 gateway."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from pgman.core.exceptions import StoreError, ValidationError
from pgman.services.s3 import ObjectStoreGateway, ObjectStream

from fakes import complete_store_config


def client_error(code, message, operation="ListObjectsV2"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def gateway(client):
    return ObjectStoreGateway(client)


class TestFromConfig:
    """Tests for building a client from settings."""

    def test_path_style(self):
        with patch("pgman.services.s3.boto3.client") as mock_client:
            ObjectStoreGateway.from_config(complete_store_config())

        args, kwargs = mock_client.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "http://localhost:9000"
        assert kwargs["region_name"] == "us-east-1"
        assert kwargs["aws_access_key_id"] == "AKIAEXAMPLE"
        assert kwargs["aws_secret_access_key"] == "supersecretvalue"
        assert kwargs["config"].s3 == {"addressing_style": "path"}

    def test_virtual_host_style(self):
        with patch("pgman.services.s3.boto3.client") as mock_client:
            ObjectStoreGateway.from_config(complete_store_config(path_style=False, endpoint="https://s3.amazonaws.com"))

        kwargs = mock_client.call_args.kwargs
        assert kwargs["endpoint_url"] == "https://s3.amazonaws.com"
        assert kwargs["config"].s3 == {"addressing_style": "auto"}

    def test_bad_endpoint(self):
        with pytest.raises(ValidationError):
            ObjectStoreGateway.from_config(complete_store_config(endpoint="http://"))

    def test_client_construction_error(self):
        with patch("pgman.services.s3.boto3.client", side_effect=ValueError("Invalid endpoint")):
            with pytest.raises(StoreError, match="Failed to initialize S3 client"):
                ObjectStoreGateway.from_config(complete_store_config())


class TestListObjects:
    """Tests for listing."""

    def test_entries(self, gateway, client):
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        client.list_objects_v2.return_value = {
            "Contents": [
                {"Key": "a.dump", "Size": 10, "LastModified": when},
                {"Key": "b.dump"},
            ],
        }

        entries = gateway.list_objects("backups", "nightly/")

        client.list_objects_v2.assert_called_once_with(Bucket="backups", Prefix="nightly/")
        assert entries == [
            {"key": "a.dump", "size": 10, "last_modified": when},
            {"key": "b.dump", "size": None, "last_modified": None},
        ]

    def test_empty_prefix_omitted(self, gateway, client):
        client.list_objects_v2.return_value = {}
        assert gateway.list_objects("backups", "") == []
        client.list_objects_v2.assert_called_once_with(Bucket="backups")

    def test_provider_message(self, gateway, client):
        client.list_objects_v2.side_effect = client_error("NoSuchBucket", "The bucket does not exist")
        with pytest.raises(StoreError) as exc:
            gateway.list_objects("backups")
        assert str(exc.value) == "Failed to list objects: NoSuchBucket: The bucket does not exist"

    def test_connection_error(self, gateway, client):
        client.list_objects_v2.side_effect = EndpointConnectionError(endpoint_url="http://localhost:9000")
        with pytest.raises(StoreError, match="Failed to list objects"):
            gateway.list_objects("backups")


class TestOpenObject:
    """Tests for streamed fetch."""

    def test_stream(self, gateway, client):
        body = MagicMock()
        body.iter_chunks.return_value = iter([b"ab", b"", b"cd"])
        client.get_object.return_value = {"ContentLength": 4, "Body": body}

        stream = gateway.open_object("backups", "a.dump")

        client.get_object.assert_called_once_with(Bucket="backups", Key="a.dump")
        assert stream.total_length == 4
        assert list(stream.iter_chunks(2)) == [b"ab", b"cd"]
        body.iter_chunks.assert_called_once_with(chunk_size=2)

        stream.close()
        body.close.assert_called_once()

    def test_missing_length(self, gateway, client):
        client.get_object.return_value = {"Body": MagicMock()}
        assert gateway.open_object("backups", "a.dump").total_length is None

    def test_request_error(self, gateway, client):
        client.get_object.side_effect = client_error("NoSuchKey", "gone", "GetObject")
        with pytest.raises(StoreError, match="NoSuchKey: gone"):
            gateway.open_object("backups", "a.dump")

    def test_read_error(self):
        body = MagicMock()
        body.iter_chunks.side_effect = client_error("InternalError", "boom", "GetObject")
        stream = ObjectStream(key="a.dump", total_length=4, body=body)
        with pytest.raises(StoreError, match="Failed to read a.dump"):
            list(stream.iter_chunks(2))


class TestListBuckets:
    """Tests for bucket enumeration."""

    def test_names(self, gateway, client):
        client.list_buckets.return_value = {"Buckets": [{"Name": "a"}, {"Name": "b"}]}
        assert gateway.list_buckets() == ["a", "b"]

    def test_error(self, gateway, client):
        client.list_buckets.side_effect = client_error("InvalidAccessKeyId", "bad key", "ListBuckets")
        with pytest.raises(StoreError) as exc:
            gateway.list_buckets()
        assert str(exc.value) == "Failed to connect to S3: InvalidAccessKeyId: bad key"
