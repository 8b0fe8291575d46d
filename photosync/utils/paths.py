"""
Path utilities for configuration directory resolution.

Provides consistent path resolution for the photosync configuration
directory across all modules.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".photosync"

# Environment variable for overriding config directory
CONFIG_DIR_ENV_VAR = "PHOTOSYNC_CONFIG_DIR"

# File names inside the configuration directory
STATE_DB_FILE = "state.db"
STAGING_DIR_NAME = "staging"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory path.

    Priority:
        1. Explicit config_dir parameter (if provided)
        2. PHOTOSYNC_CONFIG_DIR environment variable
        3. Default directory (~/.photosync)

    Args:
        config_dir: Optional explicit configuration directory path.
                   Can be a Path object or string.

    Returns:
        Resolved Path to the configuration directory (expanduser and resolve applied)
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return DEFAULT_CONFIG_DIR.expanduser().resolve()


def state_db_path(config_dir: Path) -> Path:
    """Path of the SQLite state database inside a config directory."""
    return config_dir / STATE_DB_FILE


def default_staging_dir(config_dir: Path) -> Path:
    """Directory where downloads are staged before import."""
    return config_dir / STAGING_DIR_NAME
