"""
Content-hash duplicate detection.

Groups local assets by the SHA-256 digest of their content and picks one
member of each group to keep: the one with the earliest creation time,
ties going to the member seen first in the scan. Every other member is a
deletion candidate.

Assets whose content cannot be read are skipped with a reason instead of
failing the scan:

- missing-uri: the asset has no readable locator
- unreadable-locator: the locator is an opaque handle (``ph://``,
  ``content://``) that cannot be opened as a file
- hash-failure: reading the file failed
"""

from __future__ import annotations

import hashlib
import logging
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

from photosync.media.asset import LocalAsset

# Read size used while hashing
DEFAULT_CHUNK_SIZE = 1024 * 1024

# Number of example skipped files shown to the user
DEFAULT_SAMPLE_LIMIT = 3

logger = logging.getLogger(__name__)

HashFunction = Callable[[Path], str]


class SkipReason(str, Enum):
    """Why an asset was left out of duplicate detection."""

    MISSING_URI = "missing-uri"
    UNREADABLE_LOCATOR = "unreadable-locator"
    HASH_FAILURE = "hash-failure"


@dataclass(frozen=True)
class SkippedAsset:
    """An asset that could not be hashed."""

    asset: LocalAsset
    reason: SkipReason
    detail: str = ""


def resolve_hash_target(uri: Optional[str]) -> Optional[Path]:
    """
    Turn a readable locator into a filesystem path.

    ``file://`` URIs lose their fragment and query and are percent-decoded.
    Plain paths are accepted as they are. Any other scheme is an opaque
    handle.

    Args:
        uri: Locator of an asset

    Returns:
        Path to hash, or None when the locator cannot be opened as a file

    Example:
        >>> resolve_hash_target("file:///photos/My%20Trip.jpg#frag")
        PosixPath('/photos/My Trip.jpg')
        >>> resolve_hash_target("ph://ABC-123") is None
        True
    """
    if not uri:
        return None

    parts = urlsplit(uri)
    if parts.scheme == "file":
        path = unquote(parts.path)
        return Path(path) if path else None
    if parts.scheme and len(parts.scheme) > 1:
        return None

    # Bare path (a single-letter "scheme" is a Windows drive)
    return Path(uri.split("#", 1)[0].split("?", 1)[0])


def sha256_file(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Compute the SHA-256 hex digest of a file, reading it in chunks.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass
class DuplicateGroup:
    """
    Assets sharing one content hash (always two or more).

    Members are kept in scan order.
    """

    content_hash: str
    members: list[LocalAsset]

    @property
    def retained(self) -> LocalAsset:
        """Member with the earliest creation time; first in scan order on ties."""
        # min() returns the first minimal element, which keeps scan order on ties
        return min(self.members, key=lambda asset: asset.sort_time())

    @property
    def duplicates(self) -> list[LocalAsset]:
        """Every member except the retained one."""
        keep = self.retained
        return [asset for asset in self.members if asset is not keep]


@dataclass
class DuplicateScanResult:
    """Outcome of a duplicate scan."""

    groups: list[DuplicateGroup] = field(default_factory=list)
    hashed_count: int = 0
    skipped: list[SkippedAsset] = field(default_factory=list)

    @property
    def considered(self) -> int:
        """Assets the scan looked at."""
        return self.hashed_count + len(self.skipped)

    @property
    def duplicate_count(self) -> int:
        """Number of redundant copies (assets that would be deleted)."""
        return sum(len(group.members) - 1 for group in self.groups)

    def skip_counts(self) -> dict[SkipReason, int]:
        """Skipped assets per reason (reasons with no skips are omitted)."""
        return dict(Counter(item.reason for item in self.skipped))

    def deletion_candidates(self) -> list[LocalAsset]:
        """Redundant copies across all groups, in group order."""
        return [asset for group in self.groups for asset in group.duplicates]

    def sample_skipped(self, limit: int = DEFAULT_SAMPLE_LIMIT) -> list[str]:
        """Filenames of the first few skipped assets."""
        return [item.asset.filename for item in self.skipped[:limit]]


class DuplicateDetector:
    """
    Finds duplicate local assets by content hash.

    Usage:
        detector = DuplicateDetector()
        result = detector.detect(scan.snapshot)
        for group in result.groups:
            print(group.retained.filename, [a.filename for a in group.duplicates])
    """

    def __init__(
        self,
        hash_fn: Optional[HashFunction] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.chunk_size = chunk_size
        self.hash_fn: HashFunction = hash_fn or (
            lambda path: sha256_file(path, self.chunk_size)
        )

    def _hash_asset(self, asset: LocalAsset) -> str | SkippedAsset:
        if not asset.readable_uri:
            return SkippedAsset(asset, SkipReason.MISSING_URI)

        if asset.content_hash:
            return asset.content_hash

        target = resolve_hash_target(asset.readable_uri)
        if target is None:
            return SkippedAsset(asset, SkipReason.UNREADABLE_LOCATOR, asset.readable_uri)

        try:
            return self.hash_fn(target)
        except OSError as e:
            logger.debug(f"Could not hash {asset.filename}: {e}")
            return SkippedAsset(asset, SkipReason.HASH_FAILURE, str(e))

    def detect(self, assets: Iterable[LocalAsset]) -> DuplicateScanResult:
        """
        Group assets by content hash.

        Args:
            assets: Local assets in scan order

        Returns:
            DuplicateScanResult with groups of two or more members, ordered
            by first appearance
        """
        by_hash: dict[str, list[LocalAsset]] = {}
        result = DuplicateScanResult()

        for asset in assets:
            outcome = self._hash_asset(asset)
            if isinstance(outcome, SkippedAsset):
                result.skipped.append(outcome)
                continue
            result.hashed_count += 1
            by_hash.setdefault(outcome, []).append(asset)

        result.groups = [
            DuplicateGroup(content_hash=digest, members=members)
            for digest, members in by_hash.items()
            if len(members) > 1
        ]

        logger.info(
            f"Duplicate scan: {result.hashed_count} hashed, "
            f"{len(result.skipped)} skipped, {len(result.groups)} groups, "
            f"{result.duplicate_count} duplicates"
        )
        return result


def detect(
    assets: Iterable[LocalAsset], hash_fn: Optional[HashFunction] = None
) -> DuplicateScanResult:
    """Run a duplicate scan with the default detector settings."""
    return DuplicateDetector(hash_fn=hash_fn).detect(assets)
