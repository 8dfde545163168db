"""XMPP multi-user chat adapter, slixmpp based.

slixmpp does not rejoin the room after a dropped stream, so a disconnect is
queued into the inbox as a TransientReceiveError and the reconnect
supervisor rebuilds the client.
"""
from __future__ import annotations

import asyncio
from typing import Callable

import slixmpp
from slixmpp import JID

from relay.channels.base import RoomChannel
from relay.config import XMPPSettings, split_host_port
from relay.domain.models import Network, RelayMessage
from relay.errors import SendError, StartupConnectError, TransientReceiveError
from relay.observability import metrics


class _XMPPClient(slixmpp.ClientXMPP):
    def __init__(self, adapter: "XMPPChannel", jid: str, password: str):
        super().__init__(jid, password)
        self.register_plugin("xep_0030")  # Service Discovery
        self.register_plugin("xep_0045")  # Multi-User Chat
        self.register_plugin("xep_0199")  # XMPP Ping
        self.add_event_handler("groupchat_message", adapter.on_groupchat_stanza)
        self.add_event_handler("disconnected", lambda _evt: adapter.on_disconnected(self))


class XMPPChannel(RoomChannel):
    def __init__(
        self,
        server: str,
        jid: str,
        password: str,
        muc: str,
        nick: str,
        status_message: str = "",
        connect_timeout_s: float = 30.0,
        client_factory: Callable[..., slixmpp.ClientXMPP] = _XMPPClient,
    ):
        super().__init__(Network.xmpp)
        self.server = server
        self.jid = jid
        self.password = password
        # slixmpp reports room JIDs normalized (lowercase domain and node).
        self.muc = JID(muc).bare
        self.nick = nick
        self.status_message = status_message
        self.connect_timeout_s = connect_timeout_s
        self._client_factory = client_factory
        self._client: slixmpp.ClientXMPP | None = None
        self._connected = False
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        host, port = split_host_port(self.server, 5222)
        self._closing = False
        client = self._client_factory(self, self.jid, self.password)
        session: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _settle(exc: Exception | None = None) -> None:
            if session.done():
                return
            if exc is None:
                session.set_result(None)
            else:
                session.set_exception(exc)

        client.add_event_handler("session_start", lambda _evt: _settle())
        client.add_event_handler("failed_auth", lambda _evt: _settle(RuntimeError("authentication failed")))
        client.add_event_handler("connection_failed", lambda err: _settle(RuntimeError(f"connection failed: {err}")))

        self._client = client
        try:
            client.connect(host=host, port=port)
            await asyncio.wait_for(session, timeout=self.connect_timeout_s)
            client.send_presence(pshow="chat", pstatus=self.status_message or None)
            await client.plugin["xep_0045"].join_muc_wait(
                JID(self.muc), self.nick, maxstanzas=0, timeout=self.connect_timeout_s
            )
        except Exception as e:
            self.log.error("connect_failed", server=self.server, muc=self.muc, error=str(e))
            await self._discard(client)
            raise StartupConnectError(self.network.value, f"failed to join {self.muc}: {e}") from e
        self._connected = True
        self.log.info("joined", muc=self.muc, nick=self.nick)

    async def close(self) -> None:
        client = self._client
        if client is None:
            return
        await self._discard(client)

    async def _discard(self, client: slixmpp.ClientXMPP) -> None:
        self._closing = True
        self._connected = False
        if self._client is client:
            self._client = None
        try:
            result = client.disconnect()
            if asyncio.isfuture(result):
                await result
        except Exception as e:
            self.log.warning("disconnect_failed", error=str(e))

    def on_groupchat_stanza(self, msg) -> None:
        self.on_groupchat_message(msg["from"].bare, msg["mucnick"], msg["body"])

    def on_groupchat_message(self, room: str, nick: str, body: str) -> None:
        if not body or not nick or room != self.muc or nick == self.nick:
            return
        metrics.inbound_messages.labels(network=self.network.value).inc()
        self.inbox.publish(RelayMessage(source=self.network, author=nick, text=body))

    def on_disconnected(self, client: slixmpp.ClientXMPP) -> None:
        # Stale clients and deliberate closes are not receive failures.
        if client is not self._client or self._closing:
            return
        self._connected = False
        self.inbox.fail(TransientReceiveError("xmpp stream disconnected"))

    async def send_line(self, line: str) -> None:
        if not self._connected or self._client is None:
            raise SendError(self.network.value, "not connected")
        try:
            self._client.send_message(mto=JID(self.muc), mbody=line, mtype="groupchat")
        except Exception as e:
            raise SendError(self.network.value, str(e)) from e


def xmpp_channel(settings: XMPPSettings) -> XMPPChannel:
    return XMPPChannel(
        server=settings.server,
        jid=settings.jid,
        password=settings.password,
        muc=settings.muc,
        nick=settings.nick,
        status_message=settings.status_message,
    )
