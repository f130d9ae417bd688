"""Build Pydantic DTOs from raw request payloads.

Pydantic reports every problem at once; the API reports only the first,
in payload order, and tells identifier problems apart from other shape
problems so callers get ``InvalidIdentifier`` for a malformed id.
"""

from __future__ import annotations

from typing import Any, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from modules.core.exceptions import InvalidIdentifier, InvalidInput
from modules.core.identifiers import is_valid_object_id

INVALID_IDENTIFIER = "invalid_identifier"

M = TypeVar("M", bound=BaseModel)


def object_id_field(value: Any) -> str:
    """Field validator body for 24-hex identifiers."""
    if not is_valid_object_id(value):
        raise PydanticCustomError(
            INVALID_IDENTIFIER,
            "Invalid Product ID: {value}",
            {"value": value},
        )
    return value.lower()


def build_dto(dto_class: Type[M], data: Any) -> M:
    """Validate ``data`` into ``dto_class``.

    Raises:
        InvalidIdentifier: the first failing field is a malformed id.
        InvalidInput: the first failing field has any other problem.
    """
    try:
        return dto_class.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        if first["type"] == INVALID_IDENTIFIER:
            raise InvalidIdentifier(first["msg"]) from exc
        raise InvalidInput(_describe(first)) from exc


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "Invalid value.")
    # Pydantic prefixes messages raised from validators.
    message = message.removeprefix("Value error, ")
    return f"{location}: {message}" if location else message
