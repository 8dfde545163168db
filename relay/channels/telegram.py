from __future__ import annotations
import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional

from telegram import Bot, LinkPreviewOptions, Message, Update
from telegram.constants import ChatType
from telegram.error import TelegramError

from relay.channels.base import ChannelAdapter
from relay.domain.models import Network, TelegramInbound
from relay.errors import SendError, StartupConnectError, UploadError
from relay.media.imgur import ImgurClient
from relay.observability import metrics

GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)

class TelegramChannel(ChannelAdapter):
    """Telegram bot adapter using long polling.

    Unlike the room channels this one is not bound to a single chat: the
    relay target is decided at runtime, and admin replies go to private
    chats, so sends always name the chat.
    """
    def __init__(
        self,
        token: str,
        poll_timeout_s: int = 60,
        poll_retry_s: float = 3.0,
        imgur: Optional[ImgurClient] = None,
        bot: Optional[Bot] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__(Network.telegram)
        self.bot = bot or Bot(token)
        self.poll_timeout_s = poll_timeout_s
        self.poll_retry_s = poll_retry_s
        self.imgur = imgur
        self._sleep = sleep
        self.username = ""
        self._offset: int | None = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        try:
            await self.bot.initialize()
            me = await self.bot.get_me()
        except TelegramError as e:
            self.log.error("connect_failed", error=str(e))
            raise StartupConnectError(self.network.value, f"bot authorization failed: {e}") from e
        self.username = me.username or ""
        self._connected = True
        self.log.info("authorized", account=self.username)

    async def close(self) -> None:
        self._connected = False
        try:
            await self.bot.shutdown()
        except TelegramError as e:
            self.log.warning("shutdown_failed", error=str(e))
        if self.imgur is not None:
            await self.imgur.aclose()

    async def poll(self) -> list[TelegramInbound]:
        """One long-poll cycle. Advances the offset past every update seen."""
        updates = await self.bot.get_updates(
            offset=self._offset,
            timeout=self.poll_timeout_s,
            allowed_updates=[Update.MESSAGE],
        )
        batch: list[TelegramInbound] = []
        for update in updates:
            self._offset = update.update_id + 1
            inbound = await self.inbound_from_update(update)
            if inbound is not None:
                batch.append(inbound)
        return batch

    async def updates(self) -> AsyncIterator[TelegramInbound]:
        while True:
            try:
                batch = await self.poll()
            except TelegramError as e:
                self.log.warning("poll_failed", error=str(e), retry_in_s=self.poll_retry_s)
                await self._sleep(self.poll_retry_s)
                continue
            for inbound in batch:
                yield inbound

    async def inbound_from_update(self, update: Update) -> TelegramInbound | None:
        message = update.message
        if message is None:
            self.log.debug("update_without_message", update_id=update.update_id)
            return None
        user = message.from_user
        if user is None:
            self.log.debug("message_without_sender", update_id=update.update_id)
            return None

        text = message.text or ""
        if self.imgur is not None and message.photo:
            text = await self._photo_text(message)
        if not text:
            return None

        metrics.inbound_messages.labels(network=self.network.value).inc()
        return TelegramInbound(
            chat_id=message.chat.id,
            chat_is_group=message.chat.type in GROUP_CHAT_TYPES,
            sender_id=user.id,
            username=user.username or "",
            display_name=user.username or user.first_name,
            text=text,
        )

    async def _photo_text(self, message: Message) -> str:
        caption = message.caption or ""
        largest = message.photo[-1]
        try:
            tg_file = await self.bot.get_file(largest.file_id)
            url = await self.imgur.upload_by_url(tg_file.file_path)
        except (TelegramError, UploadError) as e:
            metrics.upload_failures.inc()
            self.log.warning("photo_upload_failed", error=str(e), fallback="caption")
            return caption
        return f"{caption} {url}" if caption else url

    async def send_message(self, chat_id: int, text: str, quiet: bool = False) -> None:
        """Send to ``chat_id``; ``quiet`` disables link previews and notification sound."""
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                link_preview_options=LinkPreviewOptions(is_disabled=True) if quiet else None,
                disable_notification=quiet,
            )
        except TelegramError as e:
            raise SendError(self.network.value, str(e)) from e
