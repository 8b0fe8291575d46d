"""
photosync.sync - reconciliation, duplicate detection and transfers
"""

from photosync.sync.duplicates import (
    DuplicateDetector,
    DuplicateGroup,
    DuplicateScanResult,
    SkipReason,
)
from photosync.sync.engine import (
    BackupResult,
    CleanupResult,
    RestoreResult,
    SyncEngine,
    SyncError,
    SyncInProgressError,
)
from photosync.sync.reconcile import plan_download, plan_upload
from photosync.sync.transfer import (
    TransferError,
    TransferFunctions,
    TransferOrchestrator,
    TransferReport,
)

__all__ = [
    "BackupResult",
    "CleanupResult",
    "DuplicateDetector",
    "DuplicateGroup",
    "DuplicateScanResult",
    "RestoreResult",
    "SkipReason",
    "SyncEngine",
    "SyncError",
    "SyncInProgressError",
    "TransferError",
    "TransferFunctions",
    "TransferOrchestrator",
    "TransferReport",
    "plan_download",
    "plan_upload",
]
