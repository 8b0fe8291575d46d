"""
Configuration file generator for photosync.

Provides functionality to generate a default configuration file with
documentation and examples for all available options.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    Returns:
        String containing YAML configuration with comments

    Example:
        config_yaml = generate_default_config()
        with open("config.yaml", "w") as f:
            f.write(config_yaml)
    """
    return """# PhotoSync Configuration
# =======================
#
# This file sets default options for photosync.
# CLI arguments always override these values.
#
# To use this configuration:
#   1. Save as ~/.photosync/config.yaml (or custom location)
#   2. Uncomment and modify options as needed
#   3. Run photosync commands normally


# Server Connection
# -----------------

# How to reach the server:
#   - local:  plain HTTP on your network (http://<local_host>:3000)
#   - remote: HTTPS (https://<remote_host>:3000)
# These override the settings remembered from the last login;
# command-line options override both.
# Default: local
# server_type: local

# LAN address of the server (IP or hostname, a pasted URL also works)
# local_host: 192.168.1.20

# Public hostname of the server
# remote_host: photos.example.com

# Server port
# Default: 3000
# server_port: 3000


# Media Library
# -------------

# Directory holding the photos and videos to back up
# Default: ~/Pictures
# media_dir: ~/Pictures

# Album (subdirectory of media_dir) that receives restored files.
# Files in this album are never uploaded again by backup.
# Default: PhotoSync
# album_name: PhotoSync

# Directory where downloads are staged before they are imported
# Default: ~/.photosync/staging
# staging_dir: ~/.photosync/staging

# Duplicates removed by clean-duplicates are moved to this directory
# (relative paths are inside media_dir) so they can be recovered.
# Default: .photosync-trash
# trash_dir: .photosync-trash

# Delete duplicates permanently instead of moving them to trash_dir
# Default: false
# permanent_delete: false

# Read size used when hashing files for duplicate detection (bytes)
# Default: 1048576
# hash_chunk_size: 1048576


# Network
# -------

# Timeout for listing and download requests (seconds)
# Default: 30
# request_timeout: 30

# Timeout for a single upload (seconds)
# Default: 30
# upload_timeout: 30

# Retry attempts for listing and download requests
# Default: 3
# api_max_retries: 3

# Initial and maximum backoff delay between retries (seconds)
# api_initial_retry_delay: 1.0
# api_max_retry_delay: 30.0


# Logging
# -------

# Enable verbose output with detailed logging
# Default: false
# verbose: false

# Preview backup, restore and duplicate cleanup without changing anything
# Default: false
# dry_run: false

# Directory for log files and per-pass trace logs
# Default: ~/.photosync/logs
# log_dir: ~/.photosync/logs

# Number of log files of each kind to keep (0 disables cleanup)
# Default: 10
# log_retention_count: 10
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Save default configuration file to specified path.

    Creates parent directories if they don't exist and saves
    the configuration with secure permissions.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite existing file. If False, fail if file exists.

    Returns:
        Tuple of (success, error_message). Returns (True, None) on success.
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")

        # Readable/writable by owner only
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)
