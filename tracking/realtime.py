"""
Purpose: Publish/subscribe fan-out for live tracking events.
What it does:
Stands in for the WebSocket connection manager: transports register a
callback per topic, the tracking service publishes events to topics.

Topics:
- trip:<trip_id>   location updates and stop completions
- order:<order_id> order status changes (detail screens)
- user:<user_id>   lightweight "your orders changed" hints (list screens)

Fire-and-forget: a failing subscriber is logged and skipped, never raised to
the publisher.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

LOCATION_UPDATED = "location:updated"
TRIP_STOP_COMPLETED = "trip:stop_completed"
ORDER_UPDATED = "order:updated"
ORDERS_CHANGED = "orders:changed"


def trip_topic(trip_id: str) -> str:
    return f"trip:{trip_id}"


def order_topic(order_id: str) -> str:
    return f"order:{order_id}"


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"


@dataclass(frozen=True)
class RealtimeEvent:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        return {"type": self.type, **self.payload}


Subscriber = Callable[[str, RealtimeEvent], None]


class RealtimeHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def subscribe(self, topic: str, callback: Subscriber) -> Callable[[], None]:
        """Register callback for topic. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(topic, callback)

        return unsubscribe

    def unsubscribe(self, topic: str, callback: Subscriber) -> None:
        with self._lock:
            callbacks = self._subscribers.get(topic)
            if not callbacks:
                return
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                del self._subscribers[topic]

    def publish(self, topic: str, event: RealtimeEvent) -> int:
        """Deliver event to every subscriber of topic. Returns how many got it."""
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))

        delivered = 0
        for callback in callbacks:
            try:
                callback(topic, event)
                delivered += 1
            except Exception:
                logger.exception("Subscriber on %s failed to handle %s", topic, event.type)
        return delivered
