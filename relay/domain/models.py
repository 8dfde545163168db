"""Domain models for the relay."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================


class Network(str, Enum):
    """Networks joined by the relay."""

    irc = "irc"
    gitter = "gitter"
    telegram = "telegram"
    xmpp = "xmpp"


class MessageKind(str, Enum):
    """Kind of inbound line."""

    normal = "normal"  # Human conversation
    status = "status"  # Notice from a network's own service account


class SupervisorState(str, Enum):
    """Reconnect supervisor states."""

    connected = "connected"
    reconnecting = "reconnecting"


# ============================================================================
# Core Models
# ============================================================================


class RelayMessage(BaseModel):
    """One inbound chat line, consumed once by the router."""

    model_config = ConfigDict(frozen=True)

    source: Network = Field(description="Network the line was received on")
    author: str = Field(description="Display name of the sender")
    text: str = Field(description="Raw UTF-8 text as received")
    kind: MessageKind = Field(default=MessageKind.normal)
    origin_chat: Optional[int] = Field(
        default=None,
        description="Telegram chat id the line was posted in; None for other networks",
    )

    @property
    def is_status(self) -> bool:
        return self.kind == MessageKind.status


class TelegramInbound(BaseModel):
    """Telegram message as seen before admin handling and routing."""

    chat_id: int
    chat_is_group: bool = False
    sender_id: int
    username: str = ""
    display_name: str
    text: str

    def to_relay_message(self) -> RelayMessage:
        return RelayMessage(
            source=Network.telegram,
            author=self.display_name,
            text=self.text,
            origin_chat=self.chat_id,
        )
