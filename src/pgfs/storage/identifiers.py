"""Object name validation.

Names are the canonical textual form of a UUID (8-4-4-4-12 hex digits). The
reserved root name (the empty string by default) denotes the synthetic root
directory. Validation happens before any store access.
"""

from __future__ import annotations

import re
import uuid

from pgfs.storage.errors import InvalidArgumentError

_UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\Z"
)


def is_valid_name(name: str, *, root_name: str = "") -> bool:
    """Check whether name is the root name or a canonical UUID string."""
    if name == root_name:
        return True
    return bool(_UUID_PATTERN.match(name))


def parse_name(name: str, *, operation: str | None = None) -> uuid.UUID:
    """Parse a non-root object name.

    Args:
        name: Candidate object name.
        operation: Operation name reported on failure.

    Returns:
        The parsed UUID.

    Raises:
        InvalidArgumentError: If name is empty or not a canonical UUID.
    """
    if not name or not _UUID_PATTERN.match(name):
        raise InvalidArgumentError(
            message="Invalid name: expected a UUID string",
            name=name,
            operation=operation,
        )
    try:
        return uuid.UUID(name)
    except ValueError as e:
        raise InvalidArgumentError(
            message="Invalid name: expected a UUID string",
            name=name,
            operation=operation,
        ) from e


def generate_name() -> str:
    """Return a new random object name."""
    return str(uuid.uuid4())
