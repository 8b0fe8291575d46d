"""
Entry point for running photosync as a module.

Usage:
    python -m photosync --help
    python -m photosync login --email you@example.com
    python -m photosync backup --dry-run
"""

from photosync.cli import cli

if __name__ == "__main__":
    cli()
