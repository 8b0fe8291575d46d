"""
Configuration loader module for photosync.

Provides YAML-based configuration file loading with support for:
- Loading configuration from default or custom paths
- Graceful handling of missing configuration files
- Basic validation of configuration structure
- Merging with CLI argument overrides
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from photosync.utils.paths import CONFIG_DIR_ENV_VAR, DEFAULT_CONFIG_DIR

# Default configuration file name
DEFAULT_CONFIG_FILE = "config.yaml"

# Valid server connection modes
VALID_SERVER_TYPES = ("local", "remote")

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


class ConfigLoader:
    """
    YAML configuration file loader.

    Handles loading and basic validation of YAML configuration files
    for the photosync application.

    Attributes:
        config_dir: Directory containing the configuration file
        config_file: Name of the configuration file

    Usage:
        loader = ConfigLoader()
        config = loader.load()

        # With custom path
        loader = ConfigLoader(config_dir=Path("/custom/path"))
        config = loader.load()

        # Load from specific file
        config = loader.load_from_file("/path/to/config.yaml")
    """

    def __init__(
        self, config_dir: Path | None = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing the configuration file.
                       Defaults to ~/.photosync/ or $PHOTOSYNC_CONFIG_DIR
            config_file: Name of the configuration file (default: config.yaml)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        else:
            env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
            if env_dir:
                self.config_dir = Path(env_dir)
            else:
                self.config_dir = DEFAULT_CONFIG_DIR

        self.config_file = config_file

    def _get_config_path(self) -> Path:
        """Get the full path to the configuration file."""
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """
        Load configuration from the default configuration file.

        Returns an empty dict if the file doesn't exist, allowing
        graceful operation with CLI defaults.

        Returns:
            Dictionary containing configuration values, or empty dict if file
            doesn't exist

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        return self.load_from_file(self._get_config_path())

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Load configuration from a specific file.

        Args:
            path: Path to the configuration file

        Returns:
            Dictionary containing configuration values, or empty dict if file
            doesn't exist

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        path = Path(path)

        if not path.exists():
            logger.debug(f"Configuration file not found: {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)

            if config is None:
                logger.debug(f"Configuration file is empty: {path}")
                return {}

            if not isinstance(config, dict):
                raise ConfigError(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(config).__name__}"
                )

            logger.debug(f"Loaded configuration from {path}")
            return config

        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

    def validate(self, config: dict[str, Any]) -> None:
        """
        Validate configuration structure and values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigError: If configuration is invalid
        """
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        valid_keys: dict[str, type[Any] | tuple[type[Any], ...]] = {
            # CLI options
            "verbose": bool,
            "dry_run": bool,
            # Server options
            "server_type": str,
            "local_host": str,
            "remote_host": str,
            "server_port": int,
            # Library options
            "media_dir": str,
            "album_name": str,
            "staging_dir": str,
            "trash_dir": str,
            "permanent_delete": bool,
            "hash_chunk_size": int,
            # API options
            "request_timeout": (int, float),
            "upload_timeout": (int, float),
            "api_max_retries": int,
            "api_initial_retry_delay": (int, float),
            "api_max_retry_delay": (int, float),
            # Logging options
            "log_dir": str,
            "log_retention_count": int,
        }

        for key, value in config.items():
            if key in valid_keys:
                expected_type = valid_keys[key]
                # bool is a subclass of int; reject it for numeric keys
                is_bool_for_number = isinstance(value, bool) and expected_type is not bool
                if is_bool_for_number or not isinstance(value, expected_type):
                    if isinstance(expected_type, tuple):
                        type_name = (
                            f"{expected_type[0].__name__} or "
                            f"{expected_type[1].__name__}"
                        )
                    else:
                        type_name = expected_type.__name__  # type: ignore[union-attr]
                    raise ConfigError(
                        f"Invalid type for '{key}': expected {type_name}, "
                        f"got {type(value).__name__}"
                    )

        if "server_type" in config and config["server_type"] not in VALID_SERVER_TYPES:
            raise ConfigError(
                f"Invalid server_type '{config['server_type']}'. "
                f"Must be one of: {', '.join(VALID_SERVER_TYPES)}"
            )

        if "server_port" in config:
            port = config["server_port"]
            if not (1 <= port <= 65535):
                raise ConfigError(f"server_port must be between 1 and 65535, got {port}")

        if "album_name" in config and not config["album_name"].strip():
            raise ConfigError("album_name cannot be empty")

        positive_int_keys = [
            "api_max_retries",
            "hash_chunk_size",
        ]
        for key in positive_int_keys:
            if key in config:
                value = config[key]
                if value < 1:
                    raise ConfigError(f"{key} must be >= 1, got {value}")

        if "log_retention_count" in config and config["log_retention_count"] < 0:
            raise ConfigError(
                f"log_retention_count must be >= 0, got {config['log_retention_count']}"
            )

        positive_float_keys = [
            "request_timeout",
            "upload_timeout",
            "api_initial_retry_delay",
            "api_max_retry_delay",
        ]
        for key in positive_float_keys:
            if key in config:
                value = config[key]
                if value <= 0:
                    raise ConfigError(f"{key} must be > 0, got {value}")

    def load_and_validate(self) -> dict[str, Any]:
        """
        Load configuration and validate it.

        Returns:
            Validated configuration dictionary

        Raises:
            ConfigError: If configuration cannot be loaded or is invalid
        """
        config = self.load()
        if config:
            self.validate(config)
        return config
