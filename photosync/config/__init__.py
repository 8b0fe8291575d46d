"""
photosync.config - Configuration management module

Contains configuration loading, validation, and server connection settings.
"""

from photosync.config.loader import ConfigError, ConfigLoader
from photosync.config.server_config import (
    ServerConfig,
    ServerConfigError,
)

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "ServerConfig",
    "ServerConfigError",
]
