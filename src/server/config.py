"""Validated settings for the live update websocket server."""

from __future__ import annotations

from dataclasses import dataclass

WEBSOCKET_PATH = "/ws"
HEALTHZ_PATH = "/healthz"


class ServerConfigurationError(Exception):
    """Raised when `[ui_server]` settings cannot be used to bind a server."""


@dataclass(frozen=True)
class UIServerConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8765

    def __post_init__(self) -> None:
        host = (self.host or "").strip()
        if not host:
            raise ServerConfigurationError("ui_server.host cannot be empty")
        # Frozen: normalise through object.__setattr__.
        object.__setattr__(self, "host", host)

        if isinstance(self.port, bool) or not 1 <= self.port <= 65535:
            raise ServerConfigurationError(
                f"ui_server.port must be between 1 and 65535, got: {self.port}"
            )

    @property
    def websocket_url(self) -> str:
        return f"ws://{self.host}:{self.port}{WEBSOCKET_PATH}"

    @classmethod
    def from_settings(cls, settings) -> "UIServerConfig":
        return cls(enabled=bool(settings.enabled), host=settings.host, port=settings.port)
