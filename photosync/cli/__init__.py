"""CLI package for photosync."""

from photosync.cli.formatters import (
    ProgressBar,
    show_backup_plan,
    show_duplicate_groups,
    show_restore_plan,
)
from photosync.cli.main import (
    DEFAULT_CONFIG_FILE,
    cli,
    get_config_dir,
)
from photosync.utils import DEFAULT_CONFIG_DIR

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
    "ProgressBar",
    "cli",
    "get_config_dir",
    "show_backup_plan",
    "show_duplicate_groups",
    "show_restore_plan",
]
