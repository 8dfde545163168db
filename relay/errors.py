"""Error taxonomy for the relay."""
from __future__ import annotations


class RelayError(Exception):
    """Base exception for relay failures."""

    pass


class ConfigError(RelayError):
    """Configuration missing or invalid. Fatal at startup."""

    pass


class StartupConnectError(RelayError):
    """Initial connect or authentication to a network failed. Fatal at startup."""

    def __init__(self, network: str, message: str):
        super().__init__(f"[{network}] {message}")
        self.network = network


class TransientReceiveError(RelayError):
    """Receive loop lost its connection; the supervisor rebuilds it."""

    pass


class SendError(RelayError):
    """A single outbound delivery failed. Logged and dropped, never retried."""

    def __init__(self, network: str, message: str):
        super().__init__(f"[{network}] {message}")
        self.network = network


class UploadError(RelayError):
    """Image host rejected or failed an upload."""

    pass
