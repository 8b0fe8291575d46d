"""
Directory-backed local media library.

The library is a directory tree of photos and videos:

    <media_dir>/
        IMG_0001.JPG          # asset id "IMG_0001.JPG", no album
        PhotoSync/            # album "PhotoSync"
            IMG_0002.JPG      # asset id "PhotoSync/IMG_0002.JPG"
        .photosync-trash/     # deleted duplicates (skipped by scans)

Asset ids are POSIX paths relative to the library root. Albums are the
top-level subdirectories. Every asset has a ``file://`` readable locator.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Optional

from PIL import Image

from photosync.media.asset import (
    DEFAULT_MEDIA_TYPES,
    InventorySnapshot,
    LocalAsset,
    MediaType,
)

# Name of the trash directory inside the library
DEFAULT_TRASH_DIR_NAME = ".photosync-trash"

# EXIF tags
EXIF_IFD_POINTER = 0x8769
EXIF_DATETIME_ORIGINAL = 36867
EXIF_DATETIME = 306
EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# Number of example filenames kept for inspection failures
MAX_FAILED_EXAMPLES = 3

# Formats the platform mimetypes table may not know about
mimetypes.add_type("image/heic", ".heic")
mimetypes.add_type("image/heif", ".heif")
mimetypes.add_type("video/quicktime", ".mov")

logger = logging.getLogger(__name__)


class MediaLibraryError(Exception):
    """Raised when the local media library cannot be read or changed."""

    pass


@dataclass
class InventoryScan:
    """
    Result of enumerating the library.

    Attributes:
        snapshot: Assets that could be inspected, in scan order
        inspect_failed: Number of files that could not be inspected
        failed_examples: Up to a few filenames that failed inspection
    """

    snapshot: InventorySnapshot[LocalAsset]
    inspect_failed: int = 0
    failed_examples: list[str] = field(default_factory=list)


def media_type_for(filename: str) -> MediaType:
    """
    Classify a file by its extension.

    Args:
        filename: File name with extension

    Returns:
        PHOTO for image types, VIDEO for video types, UNKNOWN otherwise
    """
    mime, _ = mimetypes.guess_type(filename)
    if not mime:
        return MediaType.UNKNOWN
    if mime.startswith("image/"):
        return MediaType.PHOTO
    if mime.startswith("video/"):
        return MediaType.VIDEO
    return MediaType.UNKNOWN


def read_exif_datetime(path: Path) -> Optional[datetime]:
    """
    Read the capture time of an image from its EXIF data.

    EXIF stores wall-clock time without a zone; it is interpreted in the
    local zone and returned in UTC.

    Args:
        path: Image file

    Returns:
        Aware UTC datetime, or None when the file has no usable EXIF time
    """
    try:
        with Image.open(path) as img:
            exif = img.getexif()
            value = exif.get_ifd(EXIF_IFD_POINTER).get(EXIF_DATETIME_ORIGINAL)
            if not value:
                value = exif.get(EXIF_DATETIME)
    except (OSError, ValueError, SyntaxError) as e:
        logger.debug(f"No EXIF data in {path.name}: {e}")
        return None

    if not isinstance(value, str):
        return None

    try:
        naive = datetime.strptime(value.strip("\x00 "), EXIF_DATETIME_FORMAT)
    except ValueError:
        logger.debug(f"Unparseable EXIF time in {path.name}: {value!r}")
        return None

    return naive.astimezone().astimezone(timezone.utc)


class MediaLibrary:
    """
    Local media store backed by a directory.

    Attributes:
        root: Library root directory
        trash_dir: Where deleted assets are moved
        staging_dir: Download staging directory (skipped by scans)
        permanent_delete: Remove files instead of moving them to trash

    Usage:
        library = MediaLibrary(Path("~/Pictures/phone"))
        scan = library.enumerate_assets()
        for asset in scan.snapshot:
            print(asset.filename, asset.creation_time)

        album = library.get_or_create_album("PhotoSync")
        library.add_to_album([asset.id], "PhotoSync")
    """

    def __init__(
        self,
        root: Path,
        trash_dir: Optional[Path] = None,
        staging_dir: Optional[Path] = None,
        permanent_delete: bool = False,
    ):
        self.root = Path(root).expanduser()
        self.trash_dir = (
            Path(trash_dir).expanduser() if trash_dir else self.root / DEFAULT_TRASH_DIR_NAME
        )
        self.staging_dir = Path(staging_dir).expanduser() if staging_dir else None
        self.permanent_delete = permanent_delete

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ensure_root(self) -> None:
        if not self.root.is_dir():
            raise MediaLibraryError(f"Media directory does not exist: {self.root}")

    def _asset_id(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def asset_path(self, asset_id: str) -> Path:
        """Map an asset id to its file path, refusing ids outside the library."""
        relative = PurePosixPath(asset_id)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise MediaLibraryError(f"Invalid asset id: {asset_id!r}")
        return self.root.joinpath(*relative.parts)

    def _is_excluded_dir(self, path: Path) -> bool:
        if path.name.startswith("."):
            return True
        for excluded in (self.trash_dir, self.staging_dir):
            if excluded is not None and path.resolve() == excluded.resolve():
                return True
        return False

    def _album_for(self, path: Path) -> Optional[str]:
        parts = path.relative_to(self.root).parts
        return parts[0] if len(parts) > 1 else None

    def _creation_time(self, path: Path, stat: os.stat_result) -> datetime:
        if media_type_for(path.name) == MediaType.PHOTO:
            exif_time = read_exif_datetime(path)
            if exif_time is not None:
                return exif_time
        timestamp = getattr(stat, "st_birthtime", None) or stat.st_mtime
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)

    def _build_asset(self, path: Path) -> LocalAsset:
        stat = path.stat()
        return LocalAsset(
            id=self._asset_id(path),
            filename=path.name,
            creation_time=self._creation_time(path, stat),
            media_type=media_type_for(path.name),
            readable_uri=path.resolve().as_uri(),
            album=self._album_for(path),
            size=stat.st_size,
        )

    def _walk(self, top: Path) -> Iterable[Path]:
        """Yield candidate files under top in a stable order."""
        for dirpath, dirnames, filenames in os.walk(top):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames if not self._is_excluded_dir(current / d)
            )
            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                yield current / name

    # =========================================================================
    # Inventory
    # =========================================================================

    def enumerate_assets(
        self,
        album: Optional[str] = None,
        media_types: Iterable[MediaType] = DEFAULT_MEDIA_TYPES,
    ) -> InventoryScan:
        """
        List the library's assets.

        Files that cannot be inspected are counted and skipped.

        Args:
            album: Restrict the scan to one album
            media_types: Media types to include

        Returns:
            InventoryScan with the snapshot and inspection failures

        Raises:
            MediaLibraryError: If the library (or album) directory is missing
        """
        self._ensure_root()
        wanted = set(media_types)

        if album is None:
            top = self.root
        else:
            top = self.get_album(album)
            if top is None:
                return InventoryScan(snapshot=InventorySnapshot.of([]))

        assets: list[LocalAsset] = []
        failed = 0
        failed_examples: list[str] = []

        for path in self._walk(top):
            if media_type_for(path.name) not in wanted:
                continue
            try:
                assets.append(self._build_asset(path))
            except OSError as e:
                failed += 1
                if len(failed_examples) < MAX_FAILED_EXAMPLES:
                    failed_examples.append(path.name)
                logger.warning(f"Could not inspect {path}: {e}")

        logger.info(
            f"Enumerated {len(assets)} assets in {top}"
            + (f" ({failed} could not be inspected)" if failed else "")
        )
        return InventoryScan(
            snapshot=InventorySnapshot.of(assets),
            inspect_failed=failed,
            failed_examples=failed_examples,
        )

    def get_asset_info(self, asset_id: str) -> LocalAsset:
        """
        Inspect one asset.

        Args:
            asset_id: Library-relative asset id

        Returns:
            LocalAsset with filename, locator and creation time

        Raises:
            MediaLibraryError: If the asset does not exist or cannot be read
        """
        path = self.asset_path(asset_id)
        if not path.is_file():
            raise MediaLibraryError(f"Asset not found: {asset_id}")
        try:
            return self._build_asset(path)
        except OSError as e:
            raise MediaLibraryError(f"Could not inspect {asset_id}: {e}") from e

    # =========================================================================
    # Albums
    # =========================================================================

    def get_album(self, name: str) -> Optional[Path]:
        """Return the album directory, or None if the album does not exist."""
        path = self.asset_path(name)
        if len(PurePosixPath(name).parts) != 1 or self._is_excluded_dir(path):
            raise MediaLibraryError(f"Invalid album name: {name!r}")
        return path if path.is_dir() else None

    def get_or_create_album(self, name: str) -> Path:
        """Return the album directory, creating it when missing."""
        self._ensure_root()
        existing = self.get_album(name)
        if existing is not None:
            return existing

        path = self.asset_path(name)
        try:
            path.mkdir()
        except OSError as e:
            raise MediaLibraryError(f"Could not create album {name}: {e}") from e
        logger.info(f"Created album {name}")
        return path

    def album_asset_ids(self, name: str) -> frozenset[str]:
        """Ids of the assets in an album (empty when the album is missing)."""
        scan = self.enumerate_assets(album=name)
        return frozenset(asset.id for asset in scan.snapshot)

    def add_to_album(self, asset_ids: Iterable[str], album: str) -> list[str]:
        """
        Move assets into an album.

        Album membership is location, so an asset's id changes when it is
        added. Assets already in the album are left in place.

        Args:
            asset_ids: Ids of the assets to add
            album: Album name (created when missing)

        Returns:
            The new asset ids, in input order

        Raises:
            MediaLibraryError: If an asset is missing or a file of the same
                name is already in the album
        """
        album_dir = self.get_or_create_album(album)
        new_ids: list[str] = []

        for asset_id in asset_ids:
            source = self.asset_path(asset_id)
            if not source.is_file():
                raise MediaLibraryError(f"Asset not found: {asset_id}")
            if source.parent == album_dir:
                new_ids.append(asset_id)
                continue

            target = album_dir / source.name
            if target.exists():
                raise MediaLibraryError(f"{source.name} already exists in album {album}")
            try:
                shutil.move(str(source), str(target))
            except OSError as e:
                raise MediaLibraryError(f"Could not add {asset_id} to {album}: {e}") from e
            new_ids.append(self._asset_id(target))

        return new_ids

    # =========================================================================
    # Mutations
    # =========================================================================

    def import_file(self, path: Path, filename: str) -> LocalAsset:
        """
        Commit a staged file into the library root.

        Args:
            path: Staged file (moved, not copied)
            filename: Name the asset takes in the library

        Returns:
            The new LocalAsset

        Raises:
            MediaLibraryError: If the name is unsafe, taken, or the move fails
        """
        self._ensure_root()
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise MediaLibraryError(f"Refusing to import unsafe filename: {filename!r}")

        target = self.root / filename
        if target.exists():
            raise MediaLibraryError(f"{filename} already exists in the library")

        try:
            shutil.move(str(path), str(target))
        except OSError as e:
            raise MediaLibraryError(f"Could not import {filename}: {e}") from e

        logger.debug(f"Imported {filename} into {self.root}")
        return self.get_asset_info(self._asset_id(target))

    def _trash_target(self, path: Path) -> Path:
        target = self.trash_dir / path.relative_to(self.root)
        if not target.exists():
            return target
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return target.with_name(f"{target.stem}_{stamp}{target.suffix}")

    def delete_assets(self, asset_ids: Iterable[str]) -> int:
        """
        Delete a batch of assets.

        All ids are checked before anything is deleted; one missing id fails
        the whole batch. Assets are moved to the trash directory unless
        ``permanent_delete`` is set.

        Args:
            asset_ids: Ids of the assets to delete

        Returns:
            Number of assets deleted

        Raises:
            MediaLibraryError: If any id is missing or a delete fails
        """
        paths: list[Path] = []
        for asset_id in asset_ids:
            path = self.asset_path(asset_id)
            if not path.is_file():
                raise MediaLibraryError(f"Asset not found: {asset_id}")
            paths.append(path)

        if not paths:
            return 0

        try:
            for path in paths:
                if self.permanent_delete:
                    path.unlink()
                else:
                    target = self._trash_target(path)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.move(str(path), str(target))
        except OSError as e:
            raise MediaLibraryError(f"Batch delete failed: {e}") from e

        action = "Deleted" if self.permanent_delete else "Moved to trash"
        logger.info(f"{action}: {len(paths)} assets")
        return len(paths)
