"""CLI output formatting functions.

This module contains functions for displaying pass results, duplicate
groups and progress on the command line.
"""

from typing import TYPE_CHECKING, Optional

import click

if TYPE_CHECKING:
    from photosync.sync.duplicates import DuplicateScanResult
    from photosync.sync.engine import BackupResult, RestoreResult

# Number of entries listed before "... and N more"
LIST_LIMIT = 10

# Resolution of the progress bar
PROGRESS_STEPS = 1000


class ProgressBar:
    """
    Adapts fractional progress callbacks to ``click.progressbar``.

    Usage:
        with ProgressBar("Uploading") as progress:
            engine.backup(progress=progress)
    """

    def __init__(self, label: str):
        self.label = label
        self._bar = None
        self._position = 0

    def __enter__(self) -> "ProgressBar":
        self._bar = click.progressbar(length=PROGRESS_STEPS, label=self.label)
        self._bar.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._bar is not None:
            self._bar.__exit__(exc_type, exc, tb)
            self._bar = None

    def __call__(self, fraction: float) -> None:
        if self._bar is None:
            return
        target = int(round(fraction * PROGRESS_STEPS))
        # The orchestrator resets to 0.0 when done; the bar stays full
        if target > self._position:
            self._bar.update(target - self._position)
            self._position = target


def _show_limited(title: str, names: list[str], prefix: str) -> None:
    if not names:
        return
    click.echo(f"\n{title}:")
    for name in names[:LIST_LIMIT]:
        click.echo(f"  {prefix} {name}")
    if len(names) > LIST_LIMIT:
        click.echo(f"  ... and {len(names) - LIST_LIMIT} more")


def show_backup_plan(result: "BackupResult") -> None:
    """List the assets a backup would upload."""
    _show_limited("Files to upload", [a.filename for a in result.planned], "+")


def show_restore_plan(result: "RestoreResult") -> None:
    """List the server files a restore would download."""
    _show_limited("Files to download", [f.filename for f in result.planned], "+")


def show_duplicate_groups(scan: "DuplicateScanResult") -> None:
    """
    Display duplicate groups with the copy that is kept.

    Args:
        scan: Result of a duplicate scan
    """
    if not scan.groups:
        click.echo("No duplicates found.")
        return

    click.echo(f"\n=== {len(scan.groups)} Duplicate Groups ===")
    for group in scan.groups[:LIST_LIMIT]:
        keep = group.retained
        click.echo(f"\n  keep   {keep.id}")
        for asset in group.duplicates:
            click.echo(click.style(f"  delete {asset.id}", fg="yellow"))
    if len(scan.groups) > LIST_LIMIT:
        click.echo(f"\n  ... and {len(scan.groups) - LIST_LIMIT} more groups")


def style_outcome(failed: int, label: Optional[str] = None) -> str:
    """Final status line, green when nothing failed."""
    if failed:
        return click.style(f"{label or 'Finished'} with {failed} failures.", fg="yellow")
    return click.style(f"{label or 'Finished'} successfully.", fg="green")
