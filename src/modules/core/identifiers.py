"""Opaque 24-hex identifiers.

Every entity id exposed by the API is a 24-character hexadecimal string.
New ids are time-ordered: the first 96 bits of a UUIDv7 (48-bit millisecond
timestamp followed by random bits), so primary keys sort by creation time.
"""

from __future__ import annotations

import re

import uuid6

from modules.core.exceptions import InvalidIdentifier

OBJECT_ID_LENGTH = 24

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def generate_object_id() -> str:
    """Return a new lowercase 24-hex identifier."""
    return uuid6.uuid7().hex[:OBJECT_ID_LENGTH]


def is_valid_object_id(value: object) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def ensure_object_id(value: object, kind: str = "Object") -> str:
    """Validate and normalise an identifier.

    Raises:
        InvalidIdentifier: ``value`` is not a 24-hex string.
    """
    if not is_valid_object_id(value):
        raise InvalidIdentifier(f"Invalid {kind} ID: {value}")
    return str(value).lower()
