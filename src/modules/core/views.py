import time
from typing import Any, Callable, Dict

import structlog
from django.apps import apps
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

logger = structlog.get_logger()


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


def _run_check(name: str, check: Callable[[], None], errors: tuple) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        check()
    except errors:
        logger.error("health_check.failure", service=name)
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    services: Dict[str, Dict[str, Any]] = {
        "database": _run_check("database", _check_database, (DatabaseError,)),
        # Any backend error (redis connection, timeout) counts as down.
        "cache": _run_check("cache", _check_cache, (Exception,)),
        "notifications": {
            "status": "up",
            "subscribers": apps.get_app_config("notifications").fanout.subscriber_count,
        },
    }
    healthy = all(service["status"] == "up" for service in services.values())

    logger.info("health_check.completed", status="healthy" if healthy else "unhealthy")

    return JsonResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )


class MeView(APIView):
    """Echo the identity resolved from the bearer token.

    * No token  -> 401
    * Bad token -> 401
    * Valid token -> 200 with ``id``, ``role`` and ``privileged``
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        identity = request.user
        return Response(
            {
                "id": identity.id,
                "role": identity.role,
                "privileged": identity.is_privileged,
            }
        )
