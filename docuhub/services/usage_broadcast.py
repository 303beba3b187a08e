"""Topic-keyed fan-out of API key usage events to WebSocket subscribers.

Each connection owns a ``Subscription``: a bounded asyncio queue bound to
the event loop that serves the socket, plus the set of key ids it follows.
``publish`` may be called from any thread (sync endpoints run in the
threadpool); delivery is scheduled onto each subscriber's loop.

Delivery is at-most-once. A full queue drops the event and logs a
warning; clients re-fetch usage stats for the authoritative numbers.
"""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Optional

from ..core.config import settings

logger = logging.getLogger(__name__)

USAGE_EVENT = "api_key_usage_updated"


def usage_event(key_id: int, usage_count: int, last_used_at: Optional[datetime]) -> dict[str, Any]:
    return {
        "event": USAGE_EVENT,
        "data": {
            "keyId": key_id,
            "usageCount": usage_count,
            "lastUsedAt": last_used_at.isoformat() if last_used_at else None,
        },
    }


class Subscription:
    """One connected client."""

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int):
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.topics: set[int] = set()
        self.dropped = 0

    def offer(self, message: dict[str, Any]) -> bool:
        """Enqueue without blocking. Must run on ``self.loop``."""
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Usage event dropped, subscriber queue full",
                extra={"queue_size": self.queue.maxsize, "dropped": self.dropped},
            )
            return False
        return True


class UsageBroadcaster:
    """Registry of subscriptions keyed by API key id."""

    def __init__(self, queue_size: Optional[int] = None):
        self._queue_size = queue_size
        self._subscriptions: set[Subscription] = set()
        self._lock = threading.Lock()

    def register(self) -> Subscription:
        """Create a subscription bound to the running loop."""
        sub = Subscription(asyncio.get_running_loop(), self._queue_size or settings.usage_queue_size)
        with self._lock:
            self._subscriptions.add(sub)
        return sub

    def unregister(self, sub: Subscription) -> None:
        with self._lock:
            self._subscriptions.discard(sub)

    def subscribe(self, sub: Subscription, key_id: int) -> None:
        with self._lock:
            sub.topics.add(key_id)

    def unsubscribe(self, sub: Subscription, key_id: int) -> None:
        with self._lock:
            sub.topics.discard(key_id)

    def subscriber_count(self, key_id: Optional[int] = None) -> int:
        with self._lock:
            if key_id is None:
                return len(self._subscriptions)
            return sum(1 for s in self._subscriptions if key_id in s.topics)

    def publish(self, key_id: int, message: dict[str, Any]) -> int:
        """Schedule *message* for every subscriber of *key_id*. Returns how many were targeted."""
        with self._lock:
            targets = [s for s in self._subscriptions if key_id in s.topics]

        delivered = 0
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(sub.offer, message)
                delivered += 1
            except RuntimeError:
                # Loop already closed: the socket is gone.
                logger.debug("Dropping subscriber with closed event loop")
                self.unregister(sub)
        return delivered


usage_broadcaster = UsageBroadcaster()
