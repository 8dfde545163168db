from __future__ import annotations

from types import SimpleNamespace

import pytest

from relay.channels.base import RoomChannel
from relay.channels.telegram import TelegramChannel
from relay.config import Settings
from relay.domain.models import Network
from relay.errors import SendError


class FakeRoom(RoomChannel):
    """Room channel that records every wire line."""

    def __init__(self, network: Network, line_oriented: bool = False):
        super().__init__(network)
        self.line_oriented = line_oriented
        self.lines: list[str] = []
        self.is_up = True
        self.fail_sends = False
        self.connect_failures = 0
        self.connect_calls = 0
        self.close_calls = 0
        self.on_connected = None

    @property
    def connected(self) -> bool:
        return self.is_up

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_failures > 0:
            self.connect_failures -= 1
            raise OSError("host unreachable")
        self.is_up = True
        if self.on_connected is not None:
            self.on_connected()

    async def close(self) -> None:
        self.close_calls += 1
        self.is_up = False

    async def send_line(self, line: str) -> None:
        if self.fail_sends or not self.is_up:
            raise SendError(self.network.value, "not connected")
        self.lines.append(line)


class FakeBot:
    """Stands in for telegram.Bot; records sent messages."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_sends = False
        self.updates: list = []
        self.get_updates_calls: list[dict] = []
        self.poll_errors: list[Exception] = []
        self.files: dict[str, str] = {}

    async def initialize(self):
        return None

    async def shutdown(self):
        return None

    async def get_me(self):
        return SimpleNamespace(username="relay_bot")

    async def send_message(self, **kwargs):
        if self.fail_sends:
            from telegram.error import NetworkError
            raise NetworkError("boom")
        self.sent.append(kwargs)

    async def get_updates(self, **kwargs):
        self.get_updates_calls.append(kwargs)
        if self.poll_errors:
            raise self.poll_errors.pop(0)
        updates, self.updates = self.updates, []
        return updates

    async def get_file(self, file_id):
        return SimpleNamespace(file_path=self.files[file_id])


@pytest.fixture
def bot():
    return FakeBot()


@pytest.fixture
def telegram(bot):
    ch = TelegramChannel("123:abc", bot=bot)
    ch.username = "relay_bot"
    return ch


@pytest.fixture
def rooms():
    return {
        Network.irc: FakeRoom(Network.irc, line_oriented=True),
        Network.gitter: FakeRoom(Network.gitter, line_oriented=True),
        Network.xmpp: FakeRoom(Network.xmpp),
    }


@pytest.fixture
def settings_data():
    return {
        "irc": {"nick": "relay", "channel": "#proj"},
        "gitter": {"password": "tok", "nick": "relay", "channel": "#org/proj"},
        "telegram": {"token": "123:abc", "admins": "alice bob"},
        "xmpp": {
            "server": "xmpp.example.org",
            "jid": "relay@example.org",
            "password": "pw",
            "muc": "proj@conference.example.org",
            "nick": "relay",
        },
    }


@pytest.fixture
def settings(settings_data):
    return Settings(**settings_data)
