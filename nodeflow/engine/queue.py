"""
Handoff Queue for cooperating flows.

Two flows running concurrently on the same event loop can take turns by
passing values through a pair of HandoffQueues kept in the shared context:
each side waits on get() until the other side put()s. A sentinel value
agreed on by both sides ends the exchange.
"""

from collections import deque
from typing import Any, Deque
import asyncio


class HandoffQueue:
    """
    Unbounded FIFO channel delivering each item to exactly one consumer.

    Items that arrive while a consumer is waiting go straight to the
    earliest waiter; otherwise they are buffered. Because of that, the
    item buffer and the waiter list are never both non-empty.

    Usage:
        queue = HandoffQueue()
        queue.put("hello")
        item = await queue.get()
    """

    def __init__(self):
        self._items: Deque[Any] = deque()
        self._waiters: Deque[asyncio.Future] = deque()

    def put(self, item: Any) -> None:
        """
        Hand ``item`` to the earliest waiting consumer, or buffer it.

        Never blocks and never rejects. Safe to call before the event loop
        starts, in which case the item is buffered.
        """
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(item)
                return
        self._items.append(item)

    async def get(self) -> Any:
        """
        Take the earliest item, waiting for a put() if none is buffered.

        Returns:
            The item
        """
        if self._items:
            return self._items.popleft()

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Delivered just before the cancellation landed
                self._requeue(waiter.result())
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _requeue(self, item: Any) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(item)
                return
        self._items.appendleft(item)

    def qsize(self) -> int:
        """Number of buffered items."""
        return len(self._items)

    def waiting(self) -> int:
        """Number of consumers waiting for an item."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    def empty(self) -> bool:
        """True if no item is buffered."""
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"HandoffQueue(items={self.qsize()}, waiting={self.waiting()})"
