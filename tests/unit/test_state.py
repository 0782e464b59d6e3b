"""Unit tests for focus field ordering and popup helpers."""

from datetime import datetime, timezone

from pgman.browser.state import (
    ConfirmCancel,
    Downloading,
    ErrorPopup,
    FocusField,
    HIDDEN,
    is_transfer_popup,
)
from pgman.models import SnapshotMetadata


class TestFocusFieldOrder:
    """Tests for Tab navigation order."""

    def test_cyclic_closure_from_every_field(self):
        """Advancing once per field returns to the starting field."""
        for start in FocusField:
            field = start
            for _ in range(len(FocusField)):
                field = field.next()
            assert field is start

    def test_order(self):
        order = [FocusField.SNAPSHOT_LIST]
        while len(order) < len(FocusField):
            order.append(order[-1].next())
        assert order == [
            FocusField.SNAPSHOT_LIST,
            FocusField.BUCKET,
            FocusField.REGION,
            FocusField.PREFIX,
            FocusField.ENDPOINT,
            FocusField.ACCESS_KEY,
            FocusField.SECRET_KEY,
            FocusField.PATH_STYLE,
            FocusField.DB_HOST,
            FocusField.DB_PORT,
            FocusField.DB_USERNAME,
            FocusField.DB_PASSWORD,
            FocusField.DB_SSL,
            FocusField.DB_NAME,
        ]

    def test_last_wraps_to_list(self):
        assert FocusField.DB_NAME.next() is FocusField.SNAPSHOT_LIST


class TestFocusFieldClassification:
    """Tests for field domain and secrecy."""

    def test_domains(self):
        assert FocusField.BUCKET.is_store_field
        assert FocusField.PATH_STYLE.is_store_field
        assert FocusField.DB_PORT.is_database_field
        assert not FocusField.SNAPSHOT_LIST.is_store_field
        assert not FocusField.SNAPSHOT_LIST.is_database_field

    def test_secrets(self):
        secret = {field for field in FocusField if field.is_secret}
        assert secret == {FocusField.ACCESS_KEY, FocusField.SECRET_KEY, FocusField.DB_PASSWORD}

    def test_flags(self):
        flags = {field for field in FocusField if field.is_flag}
        assert flags == {FocusField.PATH_STYLE, FocusField.DB_SSL}


def test_is_transfer_popup():
    snapshot = SnapshotMetadata("a.dump", 1, datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert is_transfer_popup(Downloading(snapshot, 0.5, 10.0))
    assert is_transfer_popup(ConfirmCancel(snapshot, 0.5, 10.0))
    assert not is_transfer_popup(ErrorPopup("x"))
    assert not is_transfer_popup(HIDDEN)
