"""
In-process realtime feed.

Keeps subscribers per table and calls them synchronously from 'publish', which
matches how the hosted feed invokes client callbacks: one call per inserted row,
in insertion order. 'fail' reports an error to every subscriber of a table and
drops those subscriptions, the way a closed socket would.
"""

from typing import Any

from loguru import logger

from vet_messaging.exceptions import SubscriptionError
from vet_messaging.realtime.base import ErrorCallback, InsertCallback, RealtimeFeed, Subscription
from vet_messaging.utils.database import generate_uid


class InMemoryRealtimeFeed(RealtimeFeed):
    def __init__(self) -> None:
        self._subscribers: dict[str, tuple[Subscription, InsertCallback, ErrorCallback | None]] = {}
        self.refuse_subscriptions = False

    async def subscribe(
        self,
        table: str,
        on_insert: InsertCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        if self.refuse_subscriptions:
            raise SubscriptionError(f"Subscription to {table!r} refused")
        subscription = Subscription(id=generate_uid(), table=table)
        self._subscribers[subscription.id] = (subscription, on_insert, on_error)
        logger.debug(f"Subscribed {subscription.id} to {table!r}")
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        if self._subscribers.pop(subscription.id, None) is not None:
            logger.debug(f"Unsubscribed {subscription.id} from {subscription.table!r}")

    def subscriber_count(self, table: str) -> int:
        return sum(1 for subscription, _, _ in self._subscribers.values() if subscription.table == table)

    def publish(self, table: str, row: dict[str, Any]) -> None:
        for subscription, on_insert, _ in list(self._subscribers.values()):
            if subscription.table == table:
                on_insert(dict(row))

    def fail(self, table: str, error: Exception) -> None:
        for subscription_id, (subscription, _, on_error) in list(self._subscribers.items()):
            if subscription.table != table:
                continue
            del self._subscribers[subscription_id]
            if on_error is not None:
                on_error(error)
