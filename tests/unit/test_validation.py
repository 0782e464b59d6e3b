"""Unit tests for the validation module."""

import pytest

from pgman.core.validation import (
    validate_database_name,
    validate_port,
    parse_port,
    parse_flag,
    normalize_endpoint,
    MAX_IDENTIFIER_LENGTH,
)
from pgman.core.exceptions import ValidationError


class TestValidateDatabaseName:
    """Tests for database name validation."""

    def test_valid_names(self):
        """Valid names should pass."""
        assert validate_database_name("mydb") == "mydb"
        assert validate_database_name("my_database") == "my_database"
        assert validate_database_name("_private") == "_private"
        assert validate_database_name("app-clone") == "app-clone"

    def test_empty_name(self):
        """Empty names should fail."""
        with pytest.raises(ValidationError) as exc:
            validate_database_name("")
        assert "cannot be empty" in str(exc.value)

    def test_too_long_name(self):
        """Names exceeding 63 chars should fail."""
        with pytest.raises(ValidationError) as exc:
            validate_database_name("a" * (MAX_IDENTIFIER_LENGTH + 1))
        assert "exceeds maximum length" in str(exc.value)

    def test_max_length_name(self):
        """Names at exactly 63 chars should pass."""
        name = "a" * MAX_IDENTIFIER_LENGTH
        assert validate_database_name(name) == name

    def test_invalid_names(self):
        """Names with a leading digit or special chars should fail."""
        for name in ["1database", "my.db", "my db", "my$db", "db;drop"]:
            with pytest.raises(ValidationError):
                validate_database_name(name)


class TestValidatePort:
    """Tests for port number validation."""

    def test_valid_ports(self):
        """Valid port numbers should pass."""
        assert validate_port(1) == 1
        assert validate_port(5432) == 5432
        assert validate_port(65535) == 65535

    def test_invalid_ports(self):
        """Invalid port numbers should fail."""
        with pytest.raises(ValidationError):
            validate_port(0)
        with pytest.raises(ValidationError):
            validate_port(65536)


class TestParsePort:
    """Tests for parsing a typed port."""

    def test_digits(self):
        assert parse_port("5432") == 5432
        assert parse_port(" 6432 ") == 6432

    def test_empty_clears(self):
        """Empty text means no port."""
        assert parse_port("") is None
        assert parse_port("   ") is None

    def test_non_numeric(self):
        """Non-numeric text should fail with the field named."""
        with pytest.raises(ValidationError) as exc:
            parse_port("abc")
        assert str(exc.value) == "Invalid port number"
        assert exc.value.field == "port"

    @pytest.mark.parametrize("text", ["\u00b2", "54\u00b332", "\u0663\u0664", "5 432"])
    def test_non_ascii_digits(self, text):
        """Superscripts and other Unicode digits are not port numbers."""
        with pytest.raises(ValidationError) as exc:
            parse_port(text)
        assert str(exc.value) == "Invalid port number"

    def test_negative_and_out_of_range(self):
        for text in ["-1", "0", "70000"]:
            with pytest.raises(ValidationError) as exc:
                parse_port(text)
            assert str(exc.value) == "Invalid port number"


class TestParseFlag:
    """Tests for parsing a typed boolean."""

    def test_true_any_case(self):
        assert parse_flag("true") is True
        assert parse_flag("TRUE") is True
        assert parse_flag("True") is True

    def test_everything_else_false(self):
        for text in ["false", "", "yes", "1", "t", "truthy"]:
            assert parse_flag(text) is False


class TestNormalizeEndpoint:
    """Tests for endpoint URL normalization."""

    def test_scheme_kept(self):
        assert normalize_endpoint("https://s3.example.com") == "https://s3.example.com"
        assert normalize_endpoint("http://localhost:9000") == "http://localhost:9000"

    def test_bare_host_gets_http(self):
        """Endpoints without a scheme get http://."""
        assert normalize_endpoint("localhost:9000") == "http://localhost:9000"
        assert normalize_endpoint("minio.internal") == "http://minio.internal"

    def test_missing_host(self):
        """URLs without host should fail."""
        with pytest.raises(ValidationError) as exc:
            normalize_endpoint("http://")
        assert exc.value.field == "endpoint"
