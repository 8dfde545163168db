from __future__ import annotations

import asyncio

from relay.observability.logging import get_logger

log = get_logger("target")

UNBOUND = 0


class ActiveGroupTarget:
    """The Telegram chat currently bridged to the other networks.

    Written by the admin command handler, read by the router from every
    adapter task. 0 means unbound.
    """

    def __init__(self, chat_id: int = UNBOUND):
        self._chat_id = chat_id
        self._lock = asyncio.Lock()

    async def get(self) -> int:
        async with self._lock:
            return self._chat_id

    async def bind(self, chat_id: int) -> None:
        async with self._lock:
            previous = self._chat_id
            self._chat_id = chat_id
        log.info("relay_target_bound", chat_id=chat_id, previous=previous)

    async def is_bound(self) -> bool:
        return await self.get() != UNBOUND
