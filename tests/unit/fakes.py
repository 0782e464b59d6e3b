"""Fakes for browser tests: object store, clock and config builders."""

from datetime import datetime, timedelta, timezone

from pgman.core.exceptions import StoreError
from pgman.models import ObjectStoreConfig
from pgman.services.s3 import ObjectStream


BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBody:
    """Streaming body yielding fixed chunks, optionally failing partway."""

    def __init__(self, chunks, fail_after=None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.closed = False
        self.read_count = 0

    def iter_chunks(self, chunk_size):
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise StoreError("Connection reset by peer")
            self.read_count += 1
            yield chunk

    def close(self):
        self.closed = True


class FakeGateway:
    """In-memory stand-in for ObjectStoreGateway."""

    def __init__(self, entries=None, objects=None, buckets=None):
        self.entries = entries or []
        self.objects = objects or {}
        self.buckets = buckets if buckets is not None else ["backups"]
        self.list_error = None
        self.open_error = None
        self.bucket_error = None
        self.list_calls = []
        self.bodies = []

    def list_objects(self, bucket, prefix=""):
        self.list_calls.append((bucket, prefix))
        if self.list_error:
            raise self.list_error
        return list(self.entries)

    def open_object(self, bucket, key):
        if self.open_error:
            raise self.open_error
        chunks, total, fail_after = self.objects[key]
        body = FakeBody(chunks, fail_after=fail_after)
        self.bodies.append(body)
        return ObjectStream(key=key, total_length=total, body=body)

    def list_buckets(self):
        if self.bucket_error:
            raise self.bucket_error
        return list(self.buckets)

    def add_object(self, key, chunk_count, chunk_size=4, *, total=None, fail_after=None, hours_ago=0):
        """Register an object made of chunk_count chunks and list it."""
        chunks = [bytes([i % 256]) * chunk_size for i in range(chunk_count)]
        size = chunk_count * chunk_size
        self.objects[key] = (chunks, size if total is None else total, fail_after)
        self.entries.append(entry(key, size, hours_ago=hours_ago))


def entry(key, size=1024, *, hours_ago=0, last_modified=True):
    return {
        "key": key,
        "size": size,
        "last_modified": BASE_TIME - timedelta(hours=hours_ago) if last_modified else None,
    }


def complete_store_config(**overrides) -> ObjectStoreConfig:
    values = {
        "bucket": "backups",
        "region": "us-east-1",
        "endpoint": "localhost:9000",
        "access_key_id": "AKIAEXAMPLE",
        "secret_access_key": "supersecretvalue",
        "path_style": True,
    }
    values.update(overrides)
    return ObjectStoreConfig(**values)
