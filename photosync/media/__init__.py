"""
photosync.media - Local media library and asset model
"""

from photosync.media.asset import (
    DEFAULT_MEDIA_TYPES,
    InventorySnapshot,
    LocalAsset,
    MediaType,
    RemoteFile,
)
from photosync.media.library import InventoryScan, MediaLibrary, MediaLibraryError

__all__ = [
    "DEFAULT_MEDIA_TYPES",
    "InventoryScan",
    "InventorySnapshot",
    "LocalAsset",
    "MediaLibrary",
    "MediaLibraryError",
    "MediaType",
    "RemoteFile",
]
