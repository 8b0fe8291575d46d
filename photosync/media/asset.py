"""
Asset model for the local library and the server listing.

Provides:
- LocalAsset: one photo or video held by the local media library
- RemoteFile: one entry of the server's file listing
- InventorySnapshot: immutable point-in-time listing of either side
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from photosync.utils.normalization import normalize_filename


class MediaType(str, Enum):
    """Kind of media an asset holds."""

    PHOTO = "photo"
    VIDEO = "video"
    UNKNOWN = "unknown"


# Media types a pass considers by default
DEFAULT_MEDIA_TYPES = (MediaType.PHOTO, MediaType.VIDEO)


@dataclass(frozen=True)
class LocalAsset:
    """
    A photo or video in the local media library.

    Attributes:
        id: Library-stable identifier of the asset
        filename: Actual filename (compared case-insensitively)
        creation_time: When the media was captured or created
        media_type: Photo or video
        readable_uri: Locator the content can be read from. None when the
                      asset is only referenceable through an opaque handle.
        content_hash: Content digest, when already known
        album: Album the asset belongs to, if any
        size: Size in bytes, if known
    """

    id: str
    filename: str
    creation_time: Optional[datetime] = None
    media_type: MediaType = MediaType.PHOTO
    readable_uri: Optional[str] = None
    content_hash: Optional[str] = None
    album: Optional[str] = None
    size: Optional[int] = None

    @property
    def filename_key(self) -> str:
        """Case-folded filename used for reconciliation."""
        return normalize_filename(self.filename)

    @property
    def mime_type(self) -> str:
        """Content type sent when the asset is uploaded."""
        return "video/mp4" if self.media_type == MediaType.VIDEO else "image/jpeg"

    def sort_time(self) -> datetime:
        """Creation time for ordering; missing times sort as the epoch."""
        if self.creation_time is None:
            return datetime.fromtimestamp(0, tz=timezone.utc)
        return self.creation_time


@dataclass(frozen=True)
class RemoteFile:
    """
    An entry of the server's file listing.

    Only the filename takes part in reconciliation.
    """

    filename: str
    size: Optional[int] = None
    uploaded_at: Optional[str] = None

    @property
    def filename_key(self) -> str:
        """Case-folded filename used for reconciliation."""
        return normalize_filename(self.filename)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteFile:
        """
        Create a RemoteFile from a listing entry.

        Args:
            data: One element of the ``files`` array

        Returns:
            RemoteFile instance

        Raises:
            ValueError: If the entry has no usable filename
        """
        filename = data.get("filename")
        if not isinstance(filename, str) or not filename:
            raise ValueError(f"Listing entry has no filename: {data!r}")

        size = data.get("size")
        uploaded_at = data.get("created_at") or data.get("uploaded_at")
        return cls(
            filename=filename,
            size=size if isinstance(size, int) else None,
            uploaded_at=str(uploaded_at) if uploaded_at else None,
        )


T = TypeVar("T", LocalAsset, RemoteFile)


@dataclass(frozen=True)
class InventorySnapshot(Generic[T]):
    """
    Immutable, ordered, point-in-time listing of one side.

    Usage:
        snapshot = InventorySnapshot.of(assets)
        "img_0001.jpg" in snapshot.filename_keys()
    """

    items: tuple[T, ...] = ()
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def of(cls, items: Iterable[T]) -> InventorySnapshot[T]:
        """Build a snapshot from any iterable, preserving order."""
        return cls(items=tuple(items))

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)

    def filename_keys(self) -> frozenset[str]:
        """Set of case-folded filenames in the snapshot."""
        return frozenset(item.filename_key for item in self.items)
