"""
Server connection configuration.

The server is reached either on the local network or remotely:

    local   ->  http://<local_host>:3000
    remote  ->  https://<remote_host>:3000

Hosts are stored as the user typed them and normalized when the base URL
is built, so a pasted URL such as "https://photos.example.com/api" still
resolves to the right server.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from photosync.utils.normalization import normalize_host_input

logger = logging.getLogger(__name__)

# Connection modes
SERVER_TYPE_LOCAL = "local"
SERVER_TYPE_REMOTE = "remote"
VALID_SERVER_TYPES = (SERVER_TYPE_LOCAL, SERVER_TYPE_REMOTE)

# Both modes use the same port convention
DEFAULT_SERVER_PORT = 3000

# Fallback hosts when nothing was entered
DEFAULT_HOST = "localhost"


class ServerConfigError(Exception):
    """Raised when server configuration is invalid."""

    pass


@dataclass
class ServerConfig:
    """
    User-entered server connection settings.

    Attributes:
        server_type: "local" (plain HTTP on the LAN) or "remote" (HTTPS)
        local_host: Host or IP used in local mode
        remote_host: Host or domain used in remote mode
        port: Server port (default 3000 for both modes)

    Usage:
        config = ServerConfig(server_type="local", local_host="192.168.1.20")
        config.base_url   # 'http://192.168.1.20:3000'
    """

    server_type: str = SERVER_TYPE_LOCAL
    local_host: str = ""
    remote_host: str = ""
    port: int = DEFAULT_SERVER_PORT

    def __post_init__(self) -> None:
        if self.server_type not in VALID_SERVER_TYPES:
            raise ServerConfigError(
                f"Invalid server type '{self.server_type}'. "
                f"Must be one of: {', '.join(VALID_SERVER_TYPES)}"
            )
        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise ServerConfigError(f"Invalid server port: {self.port!r}")

    @property
    def host(self) -> str:
        """Normalized host for the active connection mode."""
        raw = self.remote_host if self.server_type == SERVER_TYPE_REMOTE else self.local_host
        return normalize_host_input(raw) or DEFAULT_HOST

    @property
    def base_url(self) -> str:
        """Base URL of the server for the active connection mode."""
        scheme = "https" if self.server_type == SERVER_TYPE_REMOTE else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ServerConfig:
        """
        Create ServerConfig from a dictionary.

        Accepts both the config-file keys (``server_port``) and the short
        form (``port``).

        Args:
            data: Dictionary with server settings, or None for defaults

        Returns:
            ServerConfig instance

        Raises:
            ServerConfigError: If configuration structure is invalid
        """
        if data is None:
            return cls()

        if not isinstance(data, dict):
            raise ServerConfigError(
                f"Server configuration must be a dictionary, got {type(data).__name__}"
            )

        server_type = data.get("server_type") or SERVER_TYPE_LOCAL
        local_host = data.get("local_host") or ""
        remote_host = data.get("remote_host") or ""
        port = data.get("server_port", data.get("port", DEFAULT_SERVER_PORT))

        for key, value in (("local_host", local_host), ("remote_host", remote_host)):
            if not isinstance(value, str):
                raise ServerConfigError(
                    f"{key} must be a string, got {type(value).__name__}"
                )

        if isinstance(port, str) and port.isdigit():
            port = int(port)

        return cls(
            server_type=str(server_type).lower(),
            local_host=local_host,
            remote_host=remote_host,
            port=port,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the dictionary form stored in settings."""
        return {
            "server_type": self.server_type,
            "local_host": self.local_host,
            "remote_host": self.remote_host,
            "server_port": self.port,
        }

    def merged(self, overrides: dict[str, Any]) -> ServerConfig:
        """
        Return a copy with non-empty values from ``overrides`` applied.

        Args:
            overrides: Partial settings, e.g. from CLI options

        Returns:
            New ServerConfig
        """
        data = self.to_dict()
        for key, value in overrides.items():
            if value not in (None, ""):
                data[key] = value
        return ServerConfig.from_dict(data)
