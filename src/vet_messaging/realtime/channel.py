"""
Queue between the realtime feed and the live session.

Feed callbacks run whenever the feed decides to call them; 'MessageChannel'
turns them into items on an 'asyncio.Queue' that a single consumer drains in
order. With 'maxsize' > 0 the channel is bounded and rows arriving while it is
full are dropped and logged rather than blocking the feed.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from loguru import logger

_CLOSED = object()


class MessageChannel:
    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, row: dict[str, Any]) -> bool:
        """Enqueue 'row'. Returns False if the channel is closed or full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(row)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Realtime channel full, dropping row {row.get('id')!r} ({self.dropped} dropped)")
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # The consumer is cancelled by its owner instead.
            logger.debug("Realtime channel closed while full")

    async def join(self) -> None:
        """Wait until every pushed row has been processed by the consumer."""
        await self._queue.join()

    def task_done(self) -> None:
        self._queue.task_done()

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                self._queue.task_done()
                return
            yield item
