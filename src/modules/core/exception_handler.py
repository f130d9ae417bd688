"""Request-boundary translation of service errors.

Registered as ``REST_FRAMEWORK["EXCEPTION_HANDLER"]``.  Domain errors become
``{"detail", "code"}`` with the status the exception declares; storage
failures become a generic 500 whose detail only reaches the logs.
"""

from __future__ import annotations

import structlog
from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from modules.core.exceptions import DomainError

logger = structlog.get_logger(__name__)


def api_exception_handler(exc, context):
    view = context.get("view")
    view_name = type(view).__name__ if view is not None else None

    if isinstance(exc, DomainError):
        logger.info(
            "request.domain_error",
            view=view_name,
            error_code=exc.code,
            detail=str(exc),
        )
        return Response(
            {"detail": str(exc), "code": exc.code},
            status=exc.status_code,
        )

    if isinstance(exc, DatabaseError):
        logger.exception("request.storage_failure", view=view_name)
        return Response(
            {"detail": "Internal server error.", "code": "internal"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = exception_handler(exc, context)
    if response is not None and isinstance(response.data, dict):
        response.data.setdefault("code", _default_code(exc))
    return response


def _default_code(exc) -> str:
    codes = getattr(exc, "get_codes", None)
    if callable(codes):
        value = codes()
        if isinstance(value, str):
            return value
    return "invalid_input"
