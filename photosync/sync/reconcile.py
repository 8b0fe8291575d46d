"""
Inventory reconciliation.

Computes which assets need uploading and which server files need
downloading by comparing case-folded filenames of two full listings.
Planning is a pure function of its inputs: running it twice over the same
snapshots yields the same plan, and a pass after a fully successful pass
plans nothing.

Filenames are the only identity used. Two different photos sharing a name
are treated as the same asset.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from typing import Optional

from photosync.media.asset import InventorySnapshot, LocalAsset, RemoteFile

logger = logging.getLogger(__name__)


def already_synced_filter(
    already_synced: Optional[Iterable[LocalAsset]],
) -> Callable[[LocalAsset], bool]:
    """
    Build a predicate telling whether an asset counts as already synced.

    An asset matches when its id or its case-folded filename belongs to
    the already-synced album.
    """
    synced = list(already_synced or ())
    synced_ids = frozenset(asset.id for asset in synced)
    synced_names = frozenset(asset.filename_key for asset in synced)

    def is_synced(asset: LocalAsset) -> bool:
        return asset.id in synced_ids or asset.filename_key in synced_names

    return is_synced


def plan_upload(
    local: Iterable[LocalAsset],
    remote: Iterable[RemoteFile],
    already_synced: Optional[Iterable[LocalAsset]] = None,
) -> list[LocalAsset]:
    """
    Select local assets missing from the server.

    Assets in the already-synced album are removed before the comparison,
    matched by id or by case-folded filename.

    Args:
        local: Local assets in enumeration order
        remote: Server listing
        already_synced: Assets of the album that holds restored files

    Returns:
        Assets to upload, in enumeration order

    Example:
        >>> local = [LocalAsset("1", "IMG_001.JPG"), LocalAsset("2", "IMG_002.JPG")]
        >>> [a.filename for a in plan_upload(local, [RemoteFile("img_001.jpg")])]
        ['IMG_002.JPG']
    """
    remote_keys = frozenset(item.filename_key for item in remote)

    is_synced = already_synced_filter(already_synced)

    return [
        asset
        for asset in local
        if not is_synced(asset)
        and asset.filename_key not in remote_keys
    ]


def plan_download(
    local: Iterable[LocalAsset], remote: Iterable[RemoteFile]
) -> list[RemoteFile]:
    """
    Select server files missing from the local library.

    Args:
        local: Every local asset (all albums)
        remote: Server listing

    Returns:
        Server files to download, in listing order
    """
    local_keys = frozenset(asset.filename_key for asset in local)
    return [item for item in remote if item.filename_key not in local_keys]


def find_filename_collisions(
    snapshot: InventorySnapshot[LocalAsset] | Iterable[LocalAsset],
) -> dict[str, int]:
    """
    Find case-folded filenames that occur more than once locally.

    Such assets all map to the same server filename.

    Returns:
        Mapping of case-folded filename to occurrence count (count > 1 only)
    """
    counts = Counter(asset.filename_key for asset in snapshot)
    collisions = {key: count for key, count in counts.items() if count > 1}
    if collisions:
        logger.debug(f"{len(collisions)} filenames occur more than once locally")
    return collisions
