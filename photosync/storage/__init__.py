"""
photosync.storage - Persistent local state

SQLite storage for device identities, session data and server settings.
"""

from photosync.storage.db import StateDatabase

__all__ = ["StateDatabase"]
