"""
Purpose: Outbound event feed for the notification collaborator.
What it does:
Every timeline entry appended to an order is also published here as a
DispatchEvent, after the store lock is released. Subscribers are plain callables.
A subscriber that raises is logged and skipped; it never undoes the mutation.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

ORDER_DELETED = "order_deleted"


@dataclass(frozen=True)
class DispatchEvent:
    order_id: str
    event: str
    at: datetime
    courier_id: Optional[str] = None


Subscriber = Callable[[DispatchEvent], None]


class EventBus:
    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a callable that unsubscribes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event: DispatchEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        logger.debug("Event %s on order %s", event.event, event.order_id)
        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception("Subscriber failed on %s for order %s", event.event, event.order_id)


class EventRecorder:
    """
    Subscriber that keeps everything it sees. Handy for audits and tests.
    """
    def __init__(self):
        self.events: List[DispatchEvent] = []
        self._lock = threading.Lock()

    def __call__(self, event: DispatchEvent) -> None:
        with self._lock:
            self.events.append(event)

    def tags(self, order_id: Optional[str] = None) -> List[str]:
        with self._lock:
            return [e.event for e in self.events if order_id is None or e.order_id == order_id]
