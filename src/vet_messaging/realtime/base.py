"""
Realtime change feed interface.

The hosted backend pushes one notification per inserted row. 'RealtimeFeed'
exposes that as a callback subscription per table; the live session never
consumes callbacks directly but routes them into a 'MessageChannel'.

Concrete implementations: 'InMemoryRealtimeFeed'.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

InsertCallback = Callable[[dict[str, Any]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(BaseModel):
    """Opaque handle returned by 'subscribe' and required by 'unsubscribe'."""

    id: str
    table: str


class RealtimeFeed(ABC):
    @abstractmethod
    async def subscribe(
        self,
        table: str,
        on_insert: InsertCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Deliver every row inserted into 'table' to 'on_insert' until unsubscribed.

        Raise 'SubscriptionError' if the subscription cannot be established.
        Errors after that point are reported through 'on_error'.
        """
        pass

    @abstractmethod
    async def unsubscribe(self, subscription: Subscription) -> None:
        pass
