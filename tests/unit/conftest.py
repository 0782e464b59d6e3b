"""Shared fixtures for browser tests."""

from unittest.mock import Mock

import pytest

from pgman.browser.session import SnapshotBrowser
from pgman.models import DatabaseConfig

from fakes import FakeClock, FakeGateway, complete_store_config


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def make_session(gateway, clock, tmp_path):
    """Build a SnapshotBrowser wired to the fake gateway."""

    def factory(store=None, database=None, **kwargs):
        kwargs.setdefault("client_factory", Mock(return_value=gateway))
        kwargs.setdefault("audit", Mock())
        kwargs.setdefault("chunk_size", 4)
        kwargs.setdefault("download_dir", tmp_path)
        kwargs.setdefault("clock", clock)
        return SnapshotBrowser(
            store if store is not None else complete_store_config(),
            database if database is not None else DatabaseConfig(),
            **kwargs,
        )

    return factory
