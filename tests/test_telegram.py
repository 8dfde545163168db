from datetime import datetime, timezone

import pytest
from telegram import Chat, Message, PhotoSize, Update, User

from relay.errors import SendError, UploadError

GROUP = -1001


def _update(update_id=1, text=None, chat_type=Chat.SUPERGROUP, chat_id=GROUP, username="ann", photo=None, caption=None):
    message = Message(
        message_id=update_id,
        date=datetime.now(timezone.utc),
        chat=Chat(id=chat_id, type=chat_type),
        from_user=User(id=7, first_name="Ann", is_bot=False, username=username),
        text=text,
        photo=photo,
        caption=caption,
    )
    return Update(update_id=update_id, message=message)


PHOTOS = [
    PhotoSize(file_id="small", file_unique_id="s", width=90, height=90),
    PhotoSize(file_id="large", file_unique_id="l", width=1280, height=1280),
]


class FakeImgur:
    def __init__(self, fail=False):
        self.fail = fail
        self.uploaded: list[str] = []

    async def upload_by_url(self, url):
        if self.fail:
            raise UploadError("imgur API returned negative response")
        self.uploaded.append(url)
        return "https://i.imgur.com/abc.jpg"

    async def aclose(self):
        return None


@pytest.mark.asyncio
async def test_text_message_to_inbound(telegram):
    inbound = await telegram.inbound_from_update(_update(text="hello"))
    assert inbound.chat_id == GROUP
    assert inbound.chat_is_group is True
    assert inbound.username == "ann"
    assert inbound.display_name == "ann"
    assert inbound.text == "hello"


@pytest.mark.asyncio
async def test_first_name_used_without_username(telegram):
    inbound = await telegram.inbound_from_update(_update(text="hi", username=None, chat_type=Chat.PRIVATE, chat_id=7))
    assert inbound.display_name == "Ann"
    assert inbound.username == ""
    assert inbound.chat_is_group is False


@pytest.mark.asyncio
async def test_update_without_message_skipped(telegram):
    assert await telegram.inbound_from_update(Update(update_id=3)) is None


@pytest.mark.asyncio
async def test_photo_uploaded_largest_with_caption(telegram, bot):
    bot.files["large"] = "https://api.telegram.org/file/bot123/photos/large.jpg"
    telegram.imgur = FakeImgur()
    inbound = await telegram.inbound_from_update(_update(photo=PHOTOS, caption="look"))
    assert telegram.imgur.uploaded == ["https://api.telegram.org/file/bot123/photos/large.jpg"]
    assert inbound.text == "look https://i.imgur.com/abc.jpg"


@pytest.mark.asyncio
async def test_photo_without_caption_is_bare_link(telegram, bot):
    bot.files["large"] = "https://api.telegram.org/file/bot123/photos/large.jpg"
    telegram.imgur = FakeImgur()
    inbound = await telegram.inbound_from_update(_update(photo=PHOTOS))
    assert inbound.text == "https://i.imgur.com/abc.jpg"


@pytest.mark.asyncio
async def test_upload_failure_falls_back_to_caption(telegram, bot):
    bot.files["large"] = "https://api.telegram.org/file/bot123/photos/large.jpg"
    telegram.imgur = FakeImgur(fail=True)
    inbound = await telegram.inbound_from_update(_update(photo=PHOTOS, caption="look"))
    assert inbound.text == "look"
    assert await telegram.inbound_from_update(_update(update_id=2, photo=PHOTOS)) is None


@pytest.mark.asyncio
async def test_poll_advances_offset(telegram, bot):
    bot.updates = [_update(update_id=5, text="a"), _update(update_id=6, text="b")]
    batch = await telegram.poll()
    assert [i.text for i in batch] == ["a", "b"]
    assert bot.get_updates_calls[0]["offset"] is None
    assert bot.get_updates_calls[0]["timeout"] == 60
    await telegram.poll()
    assert bot.get_updates_calls[1]["offset"] == 7


@pytest.mark.asyncio
async def test_connect_reads_bot_username(telegram):
    telegram.username = ""
    await telegram.connect()
    assert telegram.connected
    assert telegram.username == "relay_bot"


@pytest.mark.asyncio
async def test_send_failure_is_send_error(telegram, bot):
    bot.fail_sends = True
    with pytest.raises(SendError):
        await telegram.send_message(GROUP, "<ann> hi")


@pytest.mark.asyncio
async def test_poll_error_waits_and_resumes(bot):
    from telegram.error import NetworkError

    from relay.channels.telegram import TelegramChannel

    waits = []

    async def sleep(seconds):
        waits.append(seconds)
        bot.updates = [_update(update_id=9, text="after")]

    telegram = TelegramChannel("123:abc", poll_retry_s=3.0, bot=bot, sleep=sleep)
    bot.updates = [_update(update_id=5, text="before")]
    stream = telegram.updates()
    assert (await stream.__anext__()).text == "before"

    bot.poll_errors.append(NetworkError("connection reset"))
    assert (await stream.__anext__()).text == "after"
    await stream.aclose()

    assert waits == [3.0]
    offsets = [call["offset"] for call in bot.get_updates_calls]
    assert offsets == [None, 6, 6]
