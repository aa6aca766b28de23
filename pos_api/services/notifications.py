"""Per-restaurant fan-out of order events to real-time subscribers."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from pos_api.core.config import settings

logger = logging.getLogger(__name__)

ORDER_CREATED = "order:created"
ORDER_STATUS_CHANGED = "order:status-changed"
ORDER_UPDATED = "order:updated"
ORDER_ITEM_STATUS_CHANGED = "order-item:status-changed"
TABLE_STATUS_CHANGED = "table:status-changed"
PAYMENT_CREATED = "payment:created"


@dataclass
class _Subscriber:
    queue: asyncio.Queue
    loop: asyncio.AbstractEventLoop


@dataclass
class NotificationDispatcher:
    """Best-effort publisher; delivery failures are logged and never raised."""

    queue_size: int = settings.notification_queue_size
    _channels: dict[int, list[_Subscriber]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def subscribe(self, restaurant_id: int, loop: asyncio.AbstractEventLoop | None = None) -> asyncio.Queue:
        loop = loop or asyncio.get_running_loop()
        subscriber = _Subscriber(queue=asyncio.Queue(maxsize=self.queue_size), loop=loop)
        with self._lock:
            self._channels.setdefault(restaurant_id, []).append(subscriber)
        logger.info("[NOTIFY] Subscriber joined restaurant %s", restaurant_id)
        return subscriber.queue

    def unsubscribe(self, restaurant_id: int, queue: asyncio.Queue) -> None:
        with self._lock:
            subscribers = self._channels.get(restaurant_id, [])
            self._channels[restaurant_id] = [sub for sub in subscribers if sub.queue is not queue]
            if not self._channels[restaurant_id]:
                del self._channels[restaurant_id]
        logger.info("[NOTIFY] Subscriber left restaurant %s", restaurant_id)

    def subscriber_count(self, restaurant_id: int) -> int:
        with self._lock:
            return len(self._channels.get(restaurant_id, []))

    def publish(self, restaurant_id: int, event: str, payload: dict[str, Any]) -> None:
        message: dict[str, Any] = {"event": event, "restaurant_id": restaurant_id, "data": payload}
        with self._lock:
            subscribers = list(self._channels.get(restaurant_id, []))
        for subscriber in subscribers:
            try:
                subscriber.loop.call_soon_threadsafe(_offer, subscriber.queue, message)
            except RuntimeError:
                logger.warning("[NOTIFY] Dropping %s for restaurant %s: subscriber loop closed", event, restaurant_id)


def _offer(queue: asyncio.Queue, message: dict[str, Any]) -> None:
    try:
        queue.put_nowait(message)
    except asyncio.QueueFull:
        logger.warning("[NOTIFY] Subscriber queue full, dropping %s", message["event"])


dispatcher: NotificationDispatcher = NotificationDispatcher()


def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency returning the process-wide dispatcher."""
    return dispatcher

