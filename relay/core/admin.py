from __future__ import annotations

from typing import Iterable

from relay.channels.base import ChannelAdapter
from relay.channels.telegram import TelegramChannel
from relay.core.target import ActiveGroupTarget
from relay.domain.models import Network, TelegramInbound
from relay.errors import SendError
from relay.observability.logging import get_logger

log = get_logger("admin")

COMMAND_PREFIX = "/"


class AdminCommandHandler:
    """Telegram admin commands.

    ``/start`` in a group binds the relay target to that group.
    ``/status`` replies privately with the target and connection flags.
    Any other command from an admin is swallowed.
    """

    def __init__(
        self,
        admins: Iterable[str],
        target: ActiveGroupTarget,
        telegram: TelegramChannel,
        adapters: dict[Network, ChannelAdapter],
    ):
        self.admins = frozenset(admins)
        self.target = target
        self.telegram = telegram
        self.adapters = adapters

    def is_admin_command(self, inbound: TelegramInbound) -> bool:
        return bool(inbound.username) and inbound.username in self.admins and inbound.text.startswith(COMMAND_PREFIX)

    async def handle(self, inbound: TelegramInbound) -> bool:
        """Returns True when the message was an admin command and must not be relayed."""
        if not self.is_admin_command(inbound):
            return False

        command = self._command_name(inbound.text)
        if command == "/start":
            if inbound.chat_is_group:
                await self.target.bind(inbound.chat_id)
            else:
                log.info("start_outside_group_ignored", admin=inbound.username, chat_id=inbound.chat_id)
        elif command == "/status":
            await self._reply_status(inbound)
        else:
            log.debug("admin_command_ignored", admin=inbound.username, command=command)
        return True

    async def status_text(self) -> str:
        parts = [f"groupId: {await self.target.get()}"]
        for network, label in ((Network.irc, "IRC"), (Network.gitter, "Gitter"), (Network.xmpp, "XMPP")):
            adapter = self.adapters.get(network)
            if adapter is not None:
                parts.append(f"{label}: {str(adapter.connected).lower()}")
        return ", ".join(parts)

    async def _reply_status(self, inbound: TelegramInbound) -> None:
        try:
            await self.telegram.send_message(inbound.sender_id, await self.status_text())
        except SendError as e:
            log.warning("status_reply_failed", admin=inbound.username, error=str(e))

    def _command_name(self, text: str) -> str:
        # "/start@relay_bot extra" -> "/start"; commands addressed to another bot are unknown.
        word = text.split(maxsplit=1)[0]
        name, _, bot = word.partition("@")
        if bot and self.telegram.username and bot.lower() != self.telegram.username.lower():
            return ""
        return name
