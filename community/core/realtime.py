"""
In-process change notification.

Services publish a ChangeEvent after committing a row-level mutation; every
subscriber to that table receives it on its own asyncio queue. Delivery is
coarse-grained: subscribers are expected to reload, not to apply diffs.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, Optional, Set, Tuple

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


class ChangeEvent:
    def __init__(self, table: str, event_type: str, record_id: Optional[str] = None):
        self.table = table
        self.event_type = event_type
        self.record_id = record_id
        self.occurred_at = datetime.utcnow()

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "type": self.event_type,
            "record_id": self.record_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


class Subscription:
    """A single listener on one table. Iterate it to receive events."""

    def __init__(self, table: str, loop: asyncio.AbstractEventLoop):
        self.table = table
        self.loop = loop
        self.queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue()

    async def get(self) -> ChangeEvent:
        return await self.queue.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self.queue.get()


class ChangeFeed:
    def __init__(self):
        self._subscriptions: Dict[str, Set[Subscription]] = {}

    def subscriber_count(self, table: str) -> int:
        return len(self._subscriptions.get(table, ()))

    def _add(self, subscription: Subscription) -> None:
        self._subscriptions.setdefault(subscription.table, set()).add(subscription)
        logger.debug(f"Subscribed to '{subscription.table}' ({self.subscriber_count(subscription.table)} active)")

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.table)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscriptions[subscription.table]
        logger.debug(f"Unsubscribed from '{subscription.table}'")

    @asynccontextmanager
    async def subscribe(self, table: str) -> AsyncIterator[Subscription]:
        """Hold a subscription for the duration of the ``async with`` block."""
        subscription = Subscription(table, asyncio.get_running_loop())
        self._add(subscription)
        try:
            yield subscription
        finally:
            self._remove(subscription)

    def publish(self, event: ChangeEvent) -> int:
        """
        Hand ``event`` to every current subscriber of its table.

        Safe to call from sync handlers running in the threadpool: each
        subscriber's queue is fed on its own event loop.
        """
        targets: Tuple[Subscription, ...] = tuple(self._subscriptions.get(event.table, ()))
        for subscription in targets:
            try:
                subscription.loop.call_soon_threadsafe(subscription.queue.put_nowait, event)
            except RuntimeError:
                # Loop already closed; the subscriber is going away
                self._remove(subscription)
        if targets:
            logger.debug(f"Published {event.event_type} on '{event.table}' to {len(targets)} subscriber(s)")
        return len(targets)


# Global instance for app-wide usage
change_feed = ChangeFeed()
