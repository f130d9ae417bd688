"""Server-Sent Events push channel for order notifications."""

from __future__ import annotations

import json
from typing import Iterator

import structlog
from django.apps import apps
from django.conf import settings
from django.http import StreamingHttpResponse
from rest_framework.permissions import IsAuthenticated
from rest_framework.renderers import BaseRenderer, JSONRenderer
from rest_framework.request import Request
from rest_framework.views import APIView

from modules.notifications.fanout import NotificationFanout, Subscription

logger = structlog.get_logger(__name__)


class EventStreamRenderer(BaseRenderer):
    """Lets DRF negotiate ``text/event-stream``; error bodies stay JSON."""

    media_type = "text/event-stream"
    format = "event-stream"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b""
        return json.dumps(data).encode(self.charset)


def format_event(payload: dict) -> str:
    """Frame one payload as an SSE message."""
    return f"event: {payload['eventName']}\ndata: {json.dumps(payload)}\n\n"


def event_stream(
    fanout: NotificationFanout,
    subscription: Subscription,
    heartbeat: float,
) -> Iterator[str]:
    """Yield SSE frames until the client disconnects.

    A comment line is sent whenever ``heartbeat`` seconds pass without an
    event.  The subscription is removed when the generator is closed.
    """
    try:
        yield ": connected\n\n"
        while True:
            payload = subscription.get(timeout=heartbeat)
            if payload is None:
                yield ": heartbeat\n\n"
                continue
            yield format_event(payload)
    finally:
        fanout.unsubscribe(subscription)


class NotificationStreamView(APIView):
    """GET /api/v1/notifications/stream/"""

    permission_classes = [IsAuthenticated]
    renderer_classes = [JSONRenderer, EventStreamRenderer]

    def get(self, request: Request) -> StreamingHttpResponse:
        fanout = apps.get_app_config("notifications").fanout
        subscription = fanout.subscribe(request.user)
        logger.info("notifications.stream_opened", identity_id=request.user.id)

        response = StreamingHttpResponse(
            event_stream(
                fanout,
                subscription,
                heartbeat=getattr(settings, "NOTIFICATION_HEARTBEAT_SECONDS", 15),
            ),
            content_type="text/event-stream",
        )
        response["Cache-Control"] = "no-cache"
        response["X-Accel-Buffering"] = "no"
        return response
