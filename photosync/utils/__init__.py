"""
photosync.utils - Utility module

Common utilities including logging configuration.
"""

from photosync.utils.normalization import normalize_email, normalize_filename
from photosync.utils.paths import DEFAULT_CONFIG_DIR, resolve_config_dir

__all__ = [
    "normalize_email",
    "normalize_filename",
    "resolve_config_dir",
    "DEFAULT_CONFIG_DIR",
]
