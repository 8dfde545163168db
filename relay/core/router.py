from __future__ import annotations

from typing import Awaitable, Optional

from relay.channels.base import RoomChannel
from relay.channels.telegram import TelegramChannel
from relay.core.target import UNBOUND, ActiveGroupTarget
from relay.core.transform import rewrite_gitter_uploads, status_allowed, strip_irc_formatting, tag
from relay.domain.models import Network, RelayMessage
from relay.errors import SendError
from relay.observability import metrics
from relay.observability.logging import get_logger

log = get_logger("router")


def prepare_text(msg: RelayMessage) -> str:
    """Normalize inbound text for its source network."""
    if msg.source not in (Network.irc, Network.gitter):
        return msg.text
    text = strip_irc_formatting(msg.text)
    if msg.source == Network.gitter and not msg.is_status:
        text = rewrite_gitter_uploads(text)
    return text


class Router:
    """Fans each inbound message out to every network except its source.

    Runs inline in the calling adapter's task, so each adapter's messages are
    delivered in arrival order. Delivery is best effort: failed sends are
    logged and counted, never retried.
    """

    def __init__(
        self,
        rooms: dict[Network, RoomChannel],
        telegram: Optional[TelegramChannel],
        target: ActiveGroupTarget,
    ):
        self.rooms = rooms
        self.telegram = telegram
        self.target = target

    async def route(self, msg: RelayMessage) -> int:
        """Relay one message. Returns the number of successful deliveries."""
        text = prepare_text(msg)
        if msg.is_status and not status_allowed(text):
            metrics.dropped_messages.labels(reason="status_filtered").inc()
            log.info("status_dropped", network=msg.source.value, text=text)
            return 0

        log.info("relay_inbound", network=msg.source.value, author=msg.author, text=text, kind=msg.kind.value)
        # Status notices already name their service; they go out untagged.
        author = None if msg.is_status else msg.author

        delivered = 0
        chat_id = await self.target.get()
        if self.telegram is not None and chat_id != UNBOUND and not self._is_loopback(msg, chat_id):
            line = tag(author, text) if author else text
            delivered += await self._deliver(
                Network.telegram, self.telegram.send_message(chat_id, line, quiet=msg.is_status)
            )

        for network, room in self.rooms.items():
            if network == msg.source:
                continue
            delivered += await self._deliver(network, room.send_text(author, text))
        return delivered

    @staticmethod
    def _is_loopback(msg: RelayMessage, chat_id: int) -> bool:
        # Telegram lines posted outside the target chat (e.g. a private chat
        # with the bot) still go into the target chat.
        return msg.source == Network.telegram and msg.origin_chat in (None, chat_id)

    async def _deliver(self, network: Network, send: Awaitable[None]) -> int:
        try:
            await send
        except SendError as e:
            metrics.send_failures.labels(network=network.value).inc()
            log.warning("send_failed", network=network.value, error=str(e))
            return 0
        metrics.messages_sent.labels(network=network.value).inc()
        return 1
