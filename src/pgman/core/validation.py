"""Input validation utilities.

Provides validation for:
- PostgreSQL database names
- Port numbers (typed or entered as text)
- Object store endpoint URLs

All validators return the validated value or raise ValidationError.
"""

import re
from typing import Optional
from urllib.parse import urlparse

from pgman.core.exceptions import ValidationError


# Database names are always quoted with format(%I), so hyphens are allowed
DATABASE_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_\-]*$")

# Maximum identifier length
MAX_IDENTIFIER_LENGTH = 63

# Scheme assumed for endpoints given as bare host[:port]
DEFAULT_ENDPOINT_SCHEME = "http"


def validate_database_name(value: str) -> str:
    """Validate a PostgreSQL database name.

    Rules:
    - Must start with letter or underscore
    - Can contain letters, digits, underscores and hyphens
    - Max 63 characters

    Args:
        value: The name to validate

    Returns:
        The validated name

    Raises:
        ValidationError: If validation fails
    """
    if not value:
        raise ValidationError(
            "Database name cannot be empty",
            field="database",
            hint="Provide a valid name",
        )

    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"Database name exceeds maximum length ({len(value)} > {MAX_IDENTIFIER_LENGTH})",
            field="database",
            hint=f"Use a name with {MAX_IDENTIFIER_LENGTH} or fewer characters",
            details=[f"Provided: {value[:50]}..."],
        )

    if not DATABASE_NAME_PATTERN.match(value):
        raise ValidationError(
            f"Invalid database name: '{value}'",
            field="database",
            hint="Must start with a letter or underscore, contain only letters, digits, underscores and hyphens",
        )

    return value


def validate_port(value: int) -> int:
    """Validate a port number.

    Args:
        value: Port number to validate

    Returns:
        The validated port number

    Raises:
        ValidationError: If port is out of valid range
    """
    if not 1 <= value <= 65535:
        raise ValidationError(
            f"Invalid port number: {value}",
            field="port",
            hint="Port must be between 1 and 65535",
        )
    return value


def parse_port(text: str) -> Optional[int]:
    """Parse a port typed by the operator.

    Empty text clears the port.

    Raises:
        ValidationError: If the text is not a number in 1..65535
    """
    text = text.strip()
    if not text:
        return None
    if not (text.isascii() and text.isdigit()):
        raise ValidationError(
            "Invalid port number",
            field="port",
            hint="Port must be between 1 and 65535",
            details=[f"Provided: {text}"],
        )
    try:
        return validate_port(int(text))
    except ValidationError as e:
        raise ValidationError("Invalid port number", field="port", hint=e.hint) from e


def parse_flag(text: str) -> bool:
    """Parse a boolean typed by the operator: only 'true' (any case) is True."""
    return text.strip().lower() == "true"


def normalize_endpoint(value: str) -> str:
    """Return an endpoint URL with a scheme.

    Args:
        value: Endpoint as URL or bare host[:port]

    Returns:
        Endpoint URL usable by the object store client

    Raises:
        ValidationError: If the URL has no host
    """
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        value = f"{DEFAULT_ENDPOINT_SCHEME}://{value}"

    parsed = urlparse(value)
    if not parsed.netloc:
        raise ValidationError(
            f"Endpoint URL must include a host: {value}",
            field="endpoint",
            hint="Provide a complete URL like https://s3.example.com",
        )
    return value
