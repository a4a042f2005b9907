# lpr_hub/services/change_notifier.py
"""
In-process publish/subscribe hub for entity change cues.

The entity store publishes a topic after each committed mutation, usually
from a worker thread. Subscribers live on an asyncio loop; delivery is
handed to that loop with call_soon_threadsafe, which keeps per-subscriber
order. A subscription only remembers which topics are pending, so a burst
of publishes collapses into a single wake-up.
"""

import asyncio
import threading
from typing import Optional
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)

SITE_UPDATE = "site_update"
CAMERA_UPDATE = "camera_update"
EVENT_UPDATE = "event_update"

TOPICS = frozenset({SITE_UPDATE, CAMERA_UPDATE, EVENT_UPDATE})


class Subscription:
    """Handle returned by ChangeNotifier.subscribe(). Bound to the subscribing loop."""

    def __init__(self, notifier: "ChangeNotifier", topics: frozenset, loop: asyncio.AbstractEventLoop):
        self._notifier = notifier
        self.topics = topics
        self.loop = loop
        self.active = True
        self._pending: list[str] = []
        self._ready = asyncio.Event()

    def _deliver(self, topic: str):
        # Runs on self.loop. A publish that raced unsubscribe() lands here after
        # the subscription went inactive and is discarded.
        if not self.active:
            return
        if topic not in self._pending:
            self._pending.append(topic)
        self._ready.set()

    async def wait(self, timeout: Optional[float] = None) -> list[str]:
        """
        Wait for at least one pending topic and drain them all.
        Returns [] on timeout or if the subscription is closed.
        """
        if not self._pending and self.active:
            try:
                await asyncio.wait_for(self._ready.wait(), timeout)
            except asyncio.TimeoutError:
                return []
        if not self.active:
            return []
        return self.drain()

    def drain(self) -> list[str]:
        topics, self._pending = self._pending, []
        self._ready.clear()
        return topics

    def _wake(self):
        # Release a pending wait() after the subscription has been closed.
        try:
            self.loop.call_soon_threadsafe(self._ready.set)
        except RuntimeError:
            pass

    def close(self):
        self._notifier.unsubscribe(self)


class ChangeNotifier:
    """Thread-safe subscriber registry. Create one per application."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: set[Subscription] = set()

    def subscribe(self, topics=TOPICS) -> Subscription:
        """Must be called from a running event loop."""
        topics = frozenset(topics)
        unknown = topics - TOPICS
        if unknown:
            raise ValueError(f"Unknown topics: {sorted(unknown)}")
        sub = Subscription(self, topics, asyncio.get_running_loop())
        with self._lock:
            self._subscribers.add(sub)
        logger.debug(f"Subscriber added ({len(self._subscribers)} total)")
        return sub

    def unsubscribe(self, sub: Subscription):
        """Idempotent."""
        with self._lock:
            was_active = sub.active
            sub.active = False
            self._subscribers.discard(sub)
        if was_active:
            sub._wake()

    def publish(self, topic: str) -> int:
        """
        Queue topic for every matching subscriber. Safe from any thread; never blocks.
        Returns the number of subscribers it was handed to.
        """
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic}")
        with self._lock:
            targets = [s for s in self._subscribers if topic in s.topics]

        delivered = 0
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(sub._deliver, topic)
                delivered += 1
            except RuntimeError:
                # Subscriber's loop is closed; it can never be woken again.
                logger.debug("Dropping subscriber bound to a closed event loop")
                self.unsubscribe(sub)
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def reset(self):
        """Drop every subscriber. Used on shutdown and between tests."""
        with self._lock:
            dropped = list(self._subscribers)
            self._subscribers.clear()
        for sub in dropped:
            sub.active = False
            sub._wake()
