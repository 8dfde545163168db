from __future__ import annotations
import abc
from relay.core.transform import split_lines, tag
from relay.domain.models import Network, RelayMessage
from relay.inbox import Inbox
from relay.observability.logging import network_logger

class ChannelAdapter(abc.ABC):
    """Adapter interface for one chat network.

    Adapters own their client and connection state; other components only
    read ``connected``.
    """
    def __init__(self, network: Network):
        self.network = network
        self.log = network_logger("channel", network.value)

    @property
    @abc.abstractmethod
    def connected(self) -> bool:
        ...

    @abc.abstractmethod
    async def connect(self) -> None:
        """Connect and join. Raises StartupConnectError on failure."""
        ...

    @abc.abstractmethod
    async def close(self) -> None:
        ...

class RoomChannel(ChannelAdapter):
    """Adapter bound to a single configured room or channel.

    Client callbacks publish RelayMessages into ``inbox``; exactly one task
    consumes them via ``receive``.
    """

    # Line-oriented networks cannot carry newlines in one message.
    line_oriented: bool = False

    def __init__(self, network: Network):
        super().__init__(network)
        self.inbox = Inbox(network.value)

    async def receive(self) -> RelayMessage:
        return await self.inbox.get()

    @abc.abstractmethod
    async def send_line(self, line: str) -> None:
        """Send one wire message to the room. Raises SendError."""
        ...

    async def send_text(self, author: str | None, text: str) -> None:
        lines = split_lines(text) if self.line_oriented else [text]
        for line in lines:
            await self.send_line(tag(author, line) if author else line)
