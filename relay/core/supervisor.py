"""Keeps the XMPP receive loop alive across dropped connections."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from relay.channels.base import RoomChannel
from relay.core.retry import retry_forever
from relay.domain.models import RelayMessage, SupervisorState
from relay.observability import metrics
from relay.observability.logging import network_logger


class ReconnectSupervisor:
    """Owns the lifecycle of an adapter whose client does not self-heal.

    CONNECTED -> RECONNECTING on any receive error: the handle is closed,
    then reconnect-and-rejoin is retried at a fixed interval until it
    succeeds. Messages missed while down are not replayed.
    """

    def __init__(
        self,
        adapter: RoomChannel,
        handle: Callable[[RelayMessage], Awaitable[object]],
        interval: float = 3.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.adapter = adapter
        self.handle = handle
        self.interval = interval
        self._sleep = sleep
        self.state = SupervisorState.connected
        self.reconnects = 0
        self.log = network_logger("supervisor", adapter.network.value)

    async def run(self) -> None:
        while True:
            await self.step()

    async def step(self) -> None:
        """Receive and handle one message, recovering first if receive fails."""
        try:
            msg = await self.adapter.receive()
        except Exception as e:
            await self.recover(e)
            return
        try:
            await self.handle(msg)
        except Exception:
            self.log.exception("route_failed")

    async def recover(self, error: Exception) -> None:
        self.state = SupervisorState.reconnecting
        self.log.warning("reconnecting", error=str(error), interval_s=self.interval)
        try:
            await self.adapter.close()
        except Exception as e:
            self.log.warning("close_failed", error=str(e))
        attempts = await retry_forever(self.adapter.connect, interval=self.interval, sleep=self._sleep)
        self.state = SupervisorState.connected
        self.reconnects += 1
        metrics.xmpp_reconnects.inc()
        self.log.info("reconnected", attempts=attempts)
