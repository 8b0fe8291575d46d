"""
Units of work executed by the transfer orchestrator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from photosync.media.asset import LocalAsset, RemoteFile


class WorkKind(str, Enum):
    """Kind of transfer a work item performs."""

    UPLOAD = "upload"
    DOWNLOAD = "download"
    DELETE_DUPLICATE = "delete_duplicate"


@dataclass(frozen=True)
class UploadItem:
    """Upload one local asset to the server."""

    asset: LocalAsset
    kind: WorkKind = WorkKind.UPLOAD

    @property
    def filename(self) -> str:
        return self.asset.filename


@dataclass(frozen=True)
class DownloadItem:
    """Download one server file into the local library."""

    remote_file: RemoteFile
    kind: WorkKind = WorkKind.DOWNLOAD

    @property
    def filename(self) -> str:
        return self.remote_file.filename


@dataclass(frozen=True)
class DeleteDuplicateItem:
    """Delete one redundant local copy (executed in a batch)."""

    asset: LocalAsset
    kind: WorkKind = WorkKind.DELETE_DUPLICATE

    @property
    def filename(self) -> str:
        return self.asset.filename


SyncWorkItem = Union[UploadItem, DownloadItem, DeleteDuplicateItem]
