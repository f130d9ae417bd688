"""Domain event primitives shared by the bounded contexts.

Services build an event once their transaction has finished and hand it
to an ``IEventPublisher``.  Nothing is queued or persisted: a subscriber
that is not listening when the event is published never sees it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Protocol

from django.utils import timezone


@dataclass(frozen=True)
class DomainEvent:
    """Immutable record of something that already happened to an aggregate.

    ``channel_name`` is the name subscribers see on the wire;
    ``aggregate_id`` is the 24-hex id of the entity concerned.
    """

    channel_name: ClassVar[str] = ""

    aggregate_id: str
    message: str = ""
    occurred_on: datetime = field(default_factory=timezone.now)

    def to_payload(self) -> Dict[str, Any]:
        return {"eventName": self.channel_name, "message": self.message}


class IEventPublisher(Protocol):
    """Fire-and-forget delivery of domain events.

    Implementations must never raise into the caller.
    """

    def publish(self, event: DomainEvent) -> None: ...
