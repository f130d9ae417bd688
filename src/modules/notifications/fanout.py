"""In-process fan-out of order lifecycle events to live subscribers.

Delivery is at-most-once with no persistence or replay: each subscription
owns a bounded queue, and an event that cannot be queued (full queue,
closed subscription) is logged and dropped.  ``publish`` never raises, so
a broken subscriber can never fail the request that emitted the event.

Scoping:
- privileged identities receive every event;
- everyone else receives only events for orders they own.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Dict, List, Optional

import structlog

from modules.core.authentication import Identity
from modules.orders.events import OrderEvent

logger = structlog.get_logger(__name__)


class Subscription:
    """A live subscriber: an identity plus its bounded event queue."""

    def __init__(self, identity: Identity, maxsize: int) -> None:
        self.identity = identity
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self.closed = False

    def wants(self, event: OrderEvent) -> bool:
        if self.closed:
            return False
        if self.identity.is_privileged:
            return True
        return event.owner_id == self.identity.id

    def deliver(self, payload: Dict[str, Any]) -> None:
        """Queue ``payload`` without blocking.

        Raises ``queue.Full`` when the subscriber is not keeping up.
        """
        self._queue.put_nowait(payload)

    def get(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Next payload, or ``None`` if nothing arrived within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def __repr__(self) -> str:
        return f"Subscription(identity={self.identity})"


class NotificationFanout:
    """Thread-safe registry of subscriptions; implements ``IEventPublisher``."""

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, identity: Identity) -> Subscription:
        subscription = Subscription(identity, maxsize=self._queue_size)
        with self._lock:
            self._subscriptions.append(subscription)
            count = len(self._subscriptions)
        logger.info(
            "notifications.subscribed",
            identity_id=identity.id,
            role=str(identity.role),
            subscriber_count=count,
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
            count = len(self._subscriptions)
        subscription.closed = True
        logger.info(
            "notifications.unsubscribed",
            identity_id=subscription.identity.id,
            subscriber_count=count,
        )

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: OrderEvent) -> None:
        """Deliver ``event`` to every interested subscriber.

        The subscriber list is snapshotted under the lock and delivery
        happens outside it.
        """
        with self._lock:
            targets = list(self._subscriptions)

        payload = event.to_payload()
        delivered = 0
        for subscription in targets:
            if not subscription.wants(event):
                continue
            try:
                subscription.deliver(payload)
            except queue.Full:
                logger.warning(
                    "notifications.queue_full",
                    identity_id=subscription.identity.id,
                    event_name=event.channel_name,
                    order_id=event.aggregate_id,
                )
                continue
            except Exception:
                logger.exception(
                    "notifications.delivery_failed",
                    identity_id=subscription.identity.id,
                    event_name=event.channel_name,
                    order_id=event.aggregate_id,
                )
                continue
            delivered += 1

        logger.info(
            "notifications.published",
            event_name=event.channel_name,
            order_id=event.aggregate_id,
            delivered=delivered,
        )
