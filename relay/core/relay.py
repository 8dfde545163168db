from __future__ import annotations
import asyncio
from typing import Optional
from relay.channels.base import ChannelAdapter, RoomChannel
from relay.channels.irc import gitter_channel, irc_channel
from relay.channels.telegram import TelegramChannel
from relay.channels.xmpp import xmpp_channel
from relay.config import Settings
from relay.core.admin import AdminCommandHandler
from relay.core.router import Router
from relay.core.supervisor import ReconnectSupervisor
from relay.core.target import ActiveGroupTarget
from relay.domain.models import Network, TelegramInbound
from relay.media.imgur import ImgurClient
from relay.observability import metrics
from relay.observability.logging import get_logger

log = get_logger("relay")

def _telegram_channel(settings: Settings) -> TelegramChannel:
    imgur = ImgurClient(settings.telegram.imgur_client_id) if settings.telegram.imgur_client_id else None
    return TelegramChannel(
        settings.telegram.token,
        poll_timeout_s=settings.poll_timeout_s,
        poll_retry_s=settings.reconnect_interval_s,
        imgur=imgur,
    )

class Relay:
    """Single authority: owns the four adapters, the relay target and the tasks
    that pump each adapter's inbound stream into the router.
    """
    def __init__(
        self,
        settings: Settings,
        irc: Optional[RoomChannel] = None,
        gitter: Optional[RoomChannel] = None,
        telegram: Optional[TelegramChannel] = None,
        xmpp: Optional[RoomChannel] = None,
    ):
        self.settings = settings
        self.irc = irc or irc_channel(settings.irc)
        self.gitter = gitter or gitter_channel(settings.gitter)
        self.telegram = telegram or _telegram_channel(settings)
        self.xmpp = xmpp or xmpp_channel(settings.xmpp)

        self.target = ActiveGroupTarget(settings.telegram.group_id)
        self.rooms: dict[Network, RoomChannel] = {
            Network.irc: self.irc,
            Network.gitter: self.gitter,
            Network.xmpp: self.xmpp,
        }
        self.adapters: dict[Network, ChannelAdapter] = {Network.telegram: self.telegram, **self.rooms}
        self.router = Router(self.rooms, self.telegram, self.target)
        self.admin = AdminCommandHandler(settings.telegram.admins, self.target, self.telegram, self.adapters)
        self.supervisor = ReconnectSupervisor(self.xmpp, self.router.route, interval=settings.reconnect_interval_s)
        self._tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        """Connect every network. Any StartupConnectError propagates and aborts startup."""
        await self.telegram.connect()
        log.info("relay_target", chat_id=await self.target.get())
        await self.xmpp.connect()
        await self.irc.connect()
        await self.gitter.connect()

        self._tasks = [
            asyncio.create_task(self._pump(self.irc), name="pump-irc"),
            asyncio.create_task(self._pump(self.gitter), name="pump-gitter"),
            asyncio.create_task(self.supervisor.run(), name="supervise-xmpp"),
        ]

    async def run(self) -> None:
        try:
            await self.start()
            async for inbound in self.telegram.updates():
                try:
                    await self.handle_telegram(inbound)
                except Exception:
                    log.exception("route_failed", network=self.telegram.network.value)
        finally:
            await self.stop()

    async def stop(self) -> None:
        for t in self._tasks:
            t.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        for adapter in self.adapters.values():
            try:
                await adapter.close()
            except Exception as e:
                log.warning("close_failed", network=adapter.network.value, error=str(e))

    async def handle_telegram(self, inbound: TelegramInbound) -> None:
        log.info("telegram_inbound", author=inbound.display_name, chat_id=inbound.chat_id, text=inbound.text)
        if await self.admin.handle(inbound):
            return
        if not await self.target.is_bound():
            metrics.dropped_messages.labels(reason="no_target").inc()
            log.info("relay_target_unbound", hint="Use /start to start the bot")
            return
        await self.router.route(inbound.to_relay_message())

    async def _pump(self, adapter: RoomChannel) -> None:
        while True:
            msg = await adapter.receive()
            try:
                await self.router.route(msg)
            except Exception:
                log.exception("route_failed", network=adapter.network.value)
