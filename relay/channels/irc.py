"""IRC-family adapter (plain IRC and Gitter's IRC bridge), pydle based."""
from __future__ import annotations

from typing import Callable, Optional

import pydle

from relay.channels.base import RoomChannel
from relay.config import GitterSettings, IRCSettings, split_host_port
from relay.domain.models import MessageKind, Network, RelayMessage
from relay.errors import SendError, StartupConnectError
from relay.observability import metrics


class _IRCClient(pydle.Client):
    """Pydle client that hands every callback to its owning adapter."""

    def __init__(self, adapter: "IRCChannel", nickname: str, **kwargs):
        super().__init__(nickname, realname=nickname, **kwargs)
        self._adapter = adapter

    async def on_connect(self):
        await super().on_connect()
        await self._adapter.on_registered()

    async def on_join(self, channel, user):
        await super().on_join(channel, user)
        self._adapter.on_join(channel, user)

    async def on_channel_message(self, target, by, message):
        await super().on_channel_message(target, by, message)
        self._adapter.on_channel_message(target, by, message)


class IRCChannel(RoomChannel):
    """One IRC channel on one server.

    pydle reconnects on its own; ``on_registered`` runs again after every
    reconnect and rejoins the channel.
    """

    line_oriented = True

    def __init__(
        self,
        network: Network,
        server: str,
        nick: str,
        channel: str,
        password: str = "",
        use_tls: bool = False,
        identify: str = "",
        status_nick: Optional[str] = None,
        client_factory: Callable[..., pydle.Client] = _IRCClient,
    ):
        super().__init__(network)
        self.server = server
        self.nick = nick
        self.channel = channel
        self.password = password
        self.use_tls = use_tls
        self.identify = identify
        self.status_nick = status_nick
        self._client_factory = client_factory
        self._client: pydle.Client | None = None
        self._joined = False

    @property
    def connected(self) -> bool:
        return self._client is not None and bool(self._client.connected)

    async def connect(self) -> None:
        host, port = split_host_port(self.server, 6697 if self.use_tls else 6667)
        self._client = self._client_factory(self, self.nick)
        try:
            await self._client.connect(
                hostname=host,
                port=port,
                password=self.password or None,
                tls=self.use_tls,
                tls_verify=self.use_tls,
            )
        except Exception as e:
            self.log.error("connect_failed", server=self.server, error=str(e))
            raise StartupConnectError(self.network.value, f"failed to connect to {self.server}: {e}") from e
        self.log.info("connected", server=self.server, nick=self.nick)

    async def close(self) -> None:
        if self._client is not None and self._client.connected:
            await self._client.disconnect(expected=True)

    async def on_registered(self) -> None:
        if self._client is None:
            return
        if self.identify:
            await self._client.message("NickServ", f"identify {self.identify}")
        await self._client.join(self.channel)

    def on_join(self, channel: str, user: str) -> None:
        # Only the bridge's own first join is reported; other joins are not events.
        if self._joined or user != self._own_nick():
            return
        self._joined = True
        self.log.info("joined", channel=channel)

    def on_channel_message(self, target: str, by: str, text: str) -> None:
        if target.lower() != self.channel.lower() or by == self._own_nick():
            return
        kind = MessageKind.status if self.status_nick and by == self.status_nick else MessageKind.normal
        metrics.inbound_messages.labels(network=self.network.value).inc()
        self.inbox.publish(RelayMessage(source=self.network, author=by, text=text, kind=kind))

    async def send_line(self, line: str) -> None:
        if not self.connected:
            raise SendError(self.network.value, "not connected")
        try:
            await self._client.message(self.channel, line)
        except Exception as e:
            raise SendError(self.network.value, str(e)) from e

    def _own_nick(self) -> str:
        if self._client is not None and self._client.nickname:
            return self._client.nickname
        return self.nick


def irc_channel(settings: IRCSettings) -> IRCChannel:
    return IRCChannel(
        Network.irc,
        server=settings.server,
        nick=settings.nick,
        channel=settings.channel,
        password=settings.password,
        use_tls=settings.use_tls,
        identify=settings.identify,
    )


def gitter_channel(settings: GitterSettings) -> IRCChannel:
    return IRCChannel(
        Network.gitter,
        server=settings.server,
        nick=settings.nick,
        channel=settings.channel,
        password=settings.password,
        use_tls=True,
        status_nick=settings.status_nick,
    )
