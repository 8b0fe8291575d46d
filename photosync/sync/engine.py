"""
Sync engine for PhotoSync passes.

Coordinates the three user-triggered passes over the local media library
and the server:

- backup: upload local assets the server does not have
- restore: download server files the library does not have, into an album
- clean duplicates: delete redundant local copies of identical content

Every pass re-derives its plan from two fresh full listings, so running a
pass again after an interruption simply picks up what is still missing.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from photosync.api.server_api import (
    AuthenticationRequiredError,
    ServerAPI,
    ServerAPIError,
)
from photosync.media.asset import InventorySnapshot, LocalAsset, RemoteFile
from photosync.media.library import MediaLibrary, MediaLibraryError
from photosync.sync.duplicates import DuplicateDetector, DuplicateScanResult
from photosync.sync.reconcile import (
    already_synced_filter,
    find_filename_collisions,
    plan_download,
    plan_upload,
)
from photosync.sync.transfer import (
    ProgressCallback,
    TransferError,
    TransferFunctions,
    TransferOrchestrator,
    TransferReport,
)
from photosync.sync.work import DeleteDuplicateItem, DownloadItem, UploadItem
from photosync.utils.logging import get_trace_logger

# Album that receives restored files and is excluded from backups
DEFAULT_ALBUM_NAME = "PhotoSync"

# Number of example filenames shown in summaries
SUMMARY_EXAMPLE_LIMIT = 3

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when a pass cannot run (e.g. the server listing failed)."""

    pass


class SyncInProgressError(SyncError):
    """Raised when a pass is started while another one is running."""

    pass


def _examples(filenames: list[str], limit: int = SUMMARY_EXAMPLE_LIMIT) -> str:
    shown = ", ".join(filenames[:limit])
    if len(filenames) > limit:
        shown += ", ..."
    return shown


@dataclass
class BackupResult:
    """Result of a backup pass."""

    local_count: int = 0
    remote_count: int = 0
    excluded_count: int = 0
    inspect_failed: int = 0
    planned: list[LocalAsset] = field(default_factory=list)
    report: Optional[TransferReport] = None
    dry_run: bool = False

    def summary(self) -> str:
        """Human-readable summary of the pass."""
        lines = [
            "Backup Summary:",
            f"  Local assets: {self.local_count} "
            f"({self.excluded_count} already restored, skipped)",
            f"  Files on server: {self.remote_count}",
            f"  To upload: {len(self.planned)}",
        ]
        if self.inspect_failed:
            lines.append(f"  Could not inspect: {self.inspect_failed}")

        if self.dry_run:
            lines.append("  (dry run, nothing uploaded)")
        elif self.report is not None:
            lines.extend(
                [
                    f"  Uploaded: {self.report.succeeded}",
                    f"  Already on server: {self.report.duplicates}",
                    f"  Failed: {self.report.failed}",
                ]
            )
            if self.report.failed:
                lines.append(f"  Failed files: {_examples(self.report.failed_filenames)}")
        return "\n".join(lines)


@dataclass
class RestoreResult:
    """Result of a restore pass."""

    local_count: int = 0
    remote_count: int = 0
    planned: list[RemoteFile] = field(default_factory=list)
    report: Optional[TransferReport] = None
    dry_run: bool = False
    album_name: str = DEFAULT_ALBUM_NAME

    def summary(self) -> str:
        """Human-readable summary of the pass."""
        lines = [
            "Restore Summary:",
            f"  Files on server: {self.remote_count}",
            f"  Local assets: {self.local_count}",
            f"  To download: {len(self.planned)}",
        ]
        if self.dry_run:
            lines.append("  (dry run, nothing downloaded)")
        elif self.report is not None:
            lines.extend(
                [
                    f"  Restored into '{self.album_name}': {self.report.succeeded}",
                    f"  Failed: {self.report.failed}",
                ]
            )
            if self.report.failed:
                lines.append(f"  Failed files: {_examples(self.report.failed_filenames)}")
        return "\n".join(lines)


@dataclass
class CleanupResult:
    """Result of a duplicate cleanup pass."""

    scan: DuplicateScanResult
    inspect_failed: int = 0
    inspect_failed_examples: list[str] = field(default_factory=list)
    report: Optional[TransferReport] = None
    cancelled: bool = False
    dry_run: bool = False

    @property
    def deleted(self) -> int:
        return self.report.deleted if self.report else 0

    def summary(self) -> str:
        """Human-readable summary including skip reasons and examples."""
        scan = self.scan
        lines = [
            "Duplicate Cleanup Summary:",
            f"  Assets hashed: {scan.hashed_count}",
            f"  Duplicate groups: {len(scan.groups)}",
            f"  Redundant copies: {scan.duplicate_count}",
        ]

        skipped_total = len(scan.skipped) + self.inspect_failed
        if skipped_total:
            lines.append(f"  Skipped: {skipped_total}")
            for reason, count in scan.skip_counts().items():
                lines.append(f"    {reason.value}: {count}")
            if self.inspect_failed:
                lines.append(f"    inspect-failed: {self.inspect_failed}")
            examples = scan.sample_skipped(SUMMARY_EXAMPLE_LIMIT)
            examples += self.inspect_failed_examples
            lines.append(f"  Skipped examples: {_examples(examples)}")

        if self.dry_run:
            lines.append("  (dry run, nothing deleted)")
        elif self.cancelled:
            lines.append("  Cancelled, nothing deleted")
        elif self.report is not None:
            lines.append(f"  Deleted: {self.report.deleted}")
            if self.report.delete_excluded_no_uri:
                lines.append(
                    f"  Not deletable (no readable locator): "
                    f"{self.report.delete_excluded_no_uri}"
                )
            if self.report.delete_error:
                lines.append(f"  Delete failed: {self.report.delete_error}")
        return "\n".join(lines)


class SyncEngine:
    """
    Runs backup, restore and duplicate cleanup passes.

    One pass runs at a time per engine; starting another while one is
    running raises SyncInProgressError.

    Usage:
        engine = SyncEngine(
            api=ServerAPI(base_url, token=token, device_uuid=device_uuid),
            library=MediaLibrary(Path("~/Pictures/phone")),
            staging_dir=Path("~/.photosync/staging"),
        )

        result = engine.backup()
        print(result.summary())

        result = engine.clean_duplicates(confirm=lambda scan: True)
    """

    def __init__(
        self,
        api: ServerAPI,
        library: MediaLibrary,
        staging_dir: Path,
        album_name: str = DEFAULT_ALBUM_NAME,
        detector: Optional[DuplicateDetector] = None,
        orchestrator: Optional[TransferOrchestrator] = None,
    ):
        """
        Initialize the sync engine.

        Args:
            api: Server client with credentials set
            library: Local media library
            staging_dir: Directory downloads are staged in before import
            album_name: Album receiving restored files (excluded from backup)
            detector: Duplicate detector (default SHA-256)
            orchestrator: Transfer orchestrator
        """
        self.api = api
        self.library = library
        self.staging_dir = Path(staging_dir).expanduser()
        self.album_name = album_name
        self.detector = detector or DuplicateDetector()
        self.orchestrator = orchestrator or TransferOrchestrator()
        self._lock = threading.Lock()

    @contextmanager
    def _exclusive(self, pass_name: str) -> Iterator[logging.Logger]:
        if not self._lock.acquire(blocking=False):
            raise SyncInProgressError("Another sync pass is already running")
        trace = get_trace_logger()
        trace.info(f"--- {pass_name} pass started ---")
        try:
            yield trace
        finally:
            trace.info(f"--- {pass_name} pass finished ---")
            self._lock.release()

    def _list_remote(self) -> InventorySnapshot[RemoteFile]:
        try:
            return InventorySnapshot.of(self.api.list_files())
        except AuthenticationRequiredError:
            raise
        except ServerAPIError as e:
            logger.error(f"Could not list server files: {e}")
            raise SyncError(f"Could not list server files: {e}") from e

    def _scan_local(self, album: Optional[str] = None):
        try:
            return self.library.enumerate_assets(album=album)
        except MediaLibraryError as e:
            logger.error(f"Could not read the media library: {e}")
            raise SyncError(f"Could not read the media library: {e}") from e

    # =========================================================================
    # Backup
    # =========================================================================

    def _upload_one(self, asset: LocalAsset) -> bool:
        path = self.library.asset_path(asset.id)
        result = self.api.upload_file(path, asset.filename, asset.mime_type)
        return result.duplicate

    def backup(
        self, dry_run: bool = False, progress: Optional[ProgressCallback] = None
    ) -> BackupResult:
        """
        Upload local assets that are missing on the server.

        Assets in the restore album are skipped. A failed server listing
        aborts the pass before anything is uploaded.

        Args:
            dry_run: Plan only, upload nothing
            progress: Called with the completed fraction after each upload

        Returns:
            BackupResult

        Raises:
            SyncError: If the listing or library scan fails
            SyncInProgressError: If another pass is running
            IdentityError: If the device identity is missing
        """
        with self._exclusive("backup") as trace:
            scan = self._scan_local()
            synced = self._scan_local(album=self.album_name).snapshot
            remote = self._list_remote()

            planned = plan_upload(scan.snapshot, remote, already_synced=synced)

            is_synced = already_synced_filter(synced)
            remote_keys = remote.filename_keys()
            excluded_count = 0
            for asset in scan.snapshot:
                if is_synced(asset):
                    excluded_count += 1
                    trace.info(f"SKIPPED: {asset.filename} was restored into {self.album_name}")
                elif asset.filename_key in remote_keys:
                    trace.info(f"EXISTS ON SERVER: {asset.filename}")
                else:
                    trace.info(f"MISSING ON SERVER: {asset.filename}")

            for key, count in find_filename_collisions(scan.snapshot).items():
                trace.info(f"NAME COLLISION: {key} occurs {count} times locally")

            result = BackupResult(
                local_count=len(scan.snapshot),
                remote_count=len(remote),
                excluded_count=excluded_count,
                inspect_failed=scan.inspect_failed,
                planned=planned,
                dry_run=dry_run,
            )
            logger.info(
                f"Backup plan: {len(planned)} of {len(scan.snapshot)} local assets to upload"
            )

            if dry_run or not planned:
                return result

            result.report = self.orchestrator.execute(
                [UploadItem(asset) for asset in planned],
                TransferFunctions(upload=self._upload_one),
                progress=progress,
            )
            return result

    # =========================================================================
    # Restore
    # =========================================================================

    def _download_one(self, remote_file: RemoteFile) -> None:
        filename = remote_file.filename
        if Path(filename).name != filename:
            raise TransferError(f"Refusing unsafe server filename: {filename!r}")

        staged = self.staging_dir / filename
        try:
            self.api.download_file(filename, staged)
            if staged.stat().st_size == 0:
                raise TransferError(f"Downloaded {filename} is empty")
            asset = self.library.import_file(staged, filename)
            try:
                self.library.add_to_album([asset.id], self.album_name)
            except Exception:
                # Undo the import; a restored file lives only in the album
                self.library.asset_path(asset.id).unlink(missing_ok=True)
                raise
        finally:
            staged.unlink(missing_ok=True)

    def restore(
        self, dry_run: bool = False, progress: Optional[ProgressCallback] = None
    ) -> RestoreResult:
        """
        Download server files that are missing locally into the album.

        Each file is staged, checked to be non-empty, imported into the
        library, added to the album and its staged copy removed. If adding
        to the album fails the import is undone and the file counts as failed.

        Args:
            dry_run: Plan only, download nothing
            progress: Called with the completed fraction after each download

        Returns:
            RestoreResult

        Raises:
            SyncError: If the listing or library scan fails
            SyncInProgressError: If another pass is running
            IdentityError: If the device identity is missing
        """
        with self._exclusive("restore") as trace:
            remote = self._list_remote()
            scan = self._scan_local()

            planned = plan_download(scan.snapshot, remote)

            local_keys = scan.snapshot.filename_keys()
            for remote_file in remote:
                if remote_file.filename_key in local_keys:
                    trace.info(f"EXISTS LOCALLY: {remote_file.filename}")
                else:
                    trace.info(f"MISSING LOCALLY: {remote_file.filename}")

            result = RestoreResult(
                local_count=len(scan.snapshot),
                remote_count=len(remote),
                planned=planned,
                dry_run=dry_run,
                album_name=self.album_name,
            )
            logger.info(
                f"Restore plan: {len(planned)} of {len(remote)} server files to download"
            )

            if dry_run or not planned:
                return result

            try:
                self.staging_dir.mkdir(parents=True, exist_ok=True)
                self.library.get_or_create_album(self.album_name)
            except (OSError, MediaLibraryError) as e:
                raise SyncError(f"Could not prepare restore: {e}") from e

            result.report = self.orchestrator.execute(
                [DownloadItem(remote_file) for remote_file in planned],
                TransferFunctions(download=self._download_one),
                progress=progress,
            )
            return result

    # =========================================================================
    # Duplicates
    # =========================================================================

    def _scan_for_duplicates(self, trace: logging.Logger) -> CleanupResult:
        scan = self._scan_local()
        duplicates = self.detector.detect(scan.snapshot)

        for skipped in duplicates.skipped:
            trace.info(f"SKIPPED ({skipped.reason.value}): {skipped.asset.filename}")
        for group in duplicates.groups:
            keep = group.retained
            trace.info(
                f"DUPLICATE GROUP {group.content_hash[:12]}: keep {keep.filename}, "
                f"remove {', '.join(a.filename for a in group.duplicates)}"
            )

        return CleanupResult(
            scan=duplicates,
            inspect_failed=scan.inspect_failed,
            inspect_failed_examples=list(scan.failed_examples),
        )

    def scan_duplicates(self) -> DuplicateScanResult:
        """
        Find duplicate local assets without deleting anything.

        Returns:
            DuplicateScanResult
        """
        with self._exclusive("duplicate scan") as trace:
            return self._scan_for_duplicates(trace).scan

    def clean_duplicates(
        self,
        confirm: Callable[[DuplicateScanResult], bool],
        dry_run: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> CleanupResult:
        """
        Find duplicates and delete the redundant copies in one batch.

        Args:
            confirm: Shown the scan result; returning False cancels before
                anything is deleted
            dry_run: Scan only, delete nothing
            progress: Called with the completed fraction

        Returns:
            CleanupResult
        """
        with self._exclusive("duplicate cleanup") as trace:
            result = self._scan_for_duplicates(trace)
            candidates = result.scan.deletion_candidates()

            if dry_run:
                result.dry_run = True
                return result
            if not candidates:
                return result

            if not confirm(result.scan):
                logger.info("Duplicate cleanup cancelled")
                trace.info("CANCELLED: nothing deleted")
                result.cancelled = True
                return result

            result.report = self.orchestrator.execute(
                [DeleteDuplicateItem(asset) for asset in candidates],
                TransferFunctions(delete=self.library.delete_assets),
                progress=progress,
            )
            return result
