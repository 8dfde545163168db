from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.errors import ConfigError
from relay.observability.logging import get_logger

log = get_logger("config")

DEFAULT_CONFIG_PATH = "config.json"


def split_host_port(server: str, default_port: int) -> tuple[str, int]:
    """Split ``host[:port]``; the port falls back to ``default_port``."""
    host, sep, port = server.rpartition(":")
    if not sep or not port.isdigit():
        return server, default_port
    return host, int(port)


class IRCSettings(BaseModel):
    server: str = Field(default="irc.freenode.net:6667")
    use_tls: bool = Field(default=False)
    password: str = Field(default="")
    nick: str
    channel: str
    identify: str = Field(default="", description="NickServ password, sent after registration when set.")


class GitterSettings(BaseModel):
    # Gitter's IRC bridge is TLS only.
    server: str = Field(default="irc.gitter.im:6697")
    password: str
    nick: str
    channel: str
    status_nick: str = Field(default="gitter", description="Service identity whose lines are status notices.")


class TelegramSettings(BaseModel):
    token: str
    admins: list[str] = Field(description="Usernames allowed to run admin commands.")
    group_id: int = Field(default=0, description="Initial relay target; 0 means unset.")
    imgur_client_id: str = Field(default="")

    @field_validator("admins", mode="before")
    @classmethod
    def _split_admins(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.split()
        return v

    @field_validator("group_id", mode="before")
    @classmethod
    def _parse_group_id(cls, v: Any) -> int:
        try:
            return int(v)
        except (TypeError, ValueError):
            log.warning("telegram_group_id_invalid", value=v, fallback=0)
            return 0


class XMPPSettings(BaseModel):
    server: str
    jid: str
    password: str
    muc: str
    nick: str
    status_message: str = Field(default="", description="Presence status text shown in the room.")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RELAY_", env_nested_delimiter="__", env_file=".env", extra="ignore")

    irc: IRCSettings
    gitter: GitterSettings
    telegram: TelegramSettings
    xmpp: XMPPSettings

    # Supervision
    reconnect_interval_s: float = Field(default=3.0, description="Fixed wait between XMPP reconnect attempts.")
    poll_timeout_s: int = Field(default=60, description="Telegram long-poll timeout.")

    # Logging
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    # Metrics exposition is off unless a port is given.
    metrics_port: Optional[int] = Field(default=None)


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from a JSON file layered over ``RELAY_*`` environment variables."""
    p = Path(path)
    data: dict[str, Any] = {}
    if p.exists():
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"cannot read {p}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{p} must contain a JSON object")
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
