from __future__ import annotations

import asyncio
from typing import Union

from relay.domain.models import RelayMessage
from relay.observability import metrics
from relay.observability.logging import get_logger

log = get_logger("inbox")

_Item = Union[RelayMessage, BaseException]


class Inbox:
    """Per-adapter inbound channel.

    - The adapter's client callbacks publish; one consumer task drains it.
    - FIFO per adapter; on overflow the oldest line is dropped rather than
      blocking the client's read loop.
    - A failure can be queued behind pending lines so the consumer sees
      everything received before the connection broke.
    """

    def __init__(self, name: str, max_queue_size: int = 1000):
        self.name = name
        self._queue: asyncio.Queue[_Item] = asyncio.Queue(maxsize=max_queue_size)

    def publish(self, item: _Item) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            dropped = self._queue.get_nowait()
            self._queue.put_nowait(item)
            metrics.dropped_messages.labels(reason="inbox_full").inc()
            log.warning("inbox_overflow", inbox=self.name, dropped=repr(dropped))

    def fail(self, exc: BaseException) -> None:
        self.publish(exc)

    async def get(self) -> RelayMessage:
        item = await self._queue.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def __len__(self) -> int:
        return self._queue.qsize()
