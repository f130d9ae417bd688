"""Base domain exceptions.

Every business-rule violation raised by a service derives from
``DomainError``.  The API boundary (``modules.core.exception_handler``)
translates them into an HTTP status + ``{"detail", "code"}`` body, so views
simply let them propagate.
"""

from __future__ import annotations


class DomainError(Exception):
    """Recoverable business error, reported to the caller verbatim."""

    status_code = 400
    code = "error"


class InvalidIdentifier(DomainError):
    """An id does not have the 24-hex shape; rejected before lookup."""

    code = "invalid_identifier"


class InvalidInput(DomainError):
    """Request payload failed shape or range validation."""

    code = "invalid_input"


class Forbidden(DomainError):
    """The caller's identity or role does not allow the operation."""

    status_code = 403
    code = "forbidden"


class NotFound(DomainError):
    """Base for missing entities (product, order)."""

    status_code = 404
    code = "not_found"
