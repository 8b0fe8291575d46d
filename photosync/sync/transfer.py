"""
Transfer orchestration.

Executes a list of work items through caller-supplied transfer functions:

- Uploads and downloads run one at a time, in order, from a FIFO queue.
- A failing item is recorded and never stops the items after it.
- Duplicate deletions are collected and run as one batch at the end.
- Progress is reported as a fraction after every step, starting and
  ending at 0.0.

The orchestrator keeps no state between runs. Re-running a pass means
planning again from fresh listings.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional

from photosync.media.asset import LocalAsset, RemoteFile
from photosync.sync.work import (
    DeleteDuplicateItem,
    DownloadItem,
    SyncWorkItem,
    UploadItem,
    WorkKind,
)
from photosync.utils.logging import get_trace_logger

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class TransferError(Exception):
    """Raised by a transfer function when one item cannot be transferred."""

    pass


@dataclass
class TransferFunctions:
    """
    Operations the orchestrator calls for each kind of work.

    Attributes:
        upload: Sends one asset; returns True when the server already had it
        download: Fetches one server file into the library
        delete: Deletes a batch of local assets by id
    """

    upload: Optional[Callable[[LocalAsset], bool]] = None
    download: Optional[Callable[[RemoteFile], None]] = None
    delete: Optional[Callable[[list[str]], object]] = None


@dataclass(frozen=True)
class TransferFailure:
    """One item that could not be transferred."""

    filename: str
    kind: WorkKind
    error: str


@dataclass
class TransferReport:
    """
    Outcome of one orchestrator run.

    ``succeeded + duplicates + failed == total`` always holds, where
    ``total`` counts uploads and downloads. Deletions are counted on their
    own.
    """

    total: int = 0
    succeeded: int = 0
    duplicates: int = 0
    failed: int = 0
    failures: list[TransferFailure] = field(default_factory=list)

    # Deletion batch
    delete_requested: int = 0
    deleted: int = 0
    delete_excluded_no_uri: int = 0
    delete_failed: int = 0
    delete_error: Optional[str] = None

    @property
    def failed_filenames(self) -> list[str]:
        """Filenames of failed items, in execution order."""
        return [failure.filename for failure in self.failures]

    def record_failure(self, item: SyncWorkItem, error: Exception) -> None:
        self.failed += 1
        self.failures.append(
            TransferFailure(filename=item.filename, kind=item.kind, error=str(error))
        )


class TransferOrchestrator:
    """
    Runs work items with per-item isolation and progress reporting.

    Usage:
        orchestrator = TransferOrchestrator()
        report = orchestrator.execute(
            [UploadItem(asset) for asset in to_upload],
            TransferFunctions(upload=upload_one),
            progress=lambda fraction: print(f"{fraction:.0%}"),
        )
        print(report.succeeded, report.duplicates, report.failed)
    """

    def _notify(self, progress: Optional[ProgressCallback], fraction: float) -> None:
        if progress is None:
            return
        try:
            progress(fraction)
        except Exception as e:
            # A broken progress display must not fail the transfer
            logger.debug(f"Progress callback failed: {e}")

    def _run_item(
        self, item: SyncWorkItem, fns: TransferFunctions, report: TransferReport
    ) -> None:
        trace = get_trace_logger()

        if isinstance(item, UploadItem):
            if fns.upload is None:
                raise TransferError("No upload function configured")
            duplicate = fns.upload(item.asset)
            if duplicate:
                report.duplicates += 1
                trace.info(f"DUPLICATE: {item.filename} already on server")
            else:
                report.succeeded += 1
                trace.info(f"UPLOADED: {item.filename}")
        elif isinstance(item, DownloadItem):
            if fns.download is None:
                raise TransferError("No download function configured")
            fns.download(item.remote_file)
            report.succeeded += 1
            trace.info(f"DOWNLOADED: {item.filename}")
        else:
            raise TransferError(f"Unsupported work item: {item!r}")

    def _run_delete_batch(
        self,
        items: list[DeleteDuplicateItem],
        fns: TransferFunctions,
        report: TransferReport,
    ) -> None:
        trace = get_trace_logger()
        batch: list[str] = []

        for item in items:
            if not item.asset.readable_uri:
                report.delete_excluded_no_uri += 1
                trace.info(f"DELETE EXCLUDED: {item.filename} has no readable locator")
                continue
            batch.append(item.asset.id)

        report.delete_requested = len(batch)
        if not batch:
            return

        try:
            if fns.delete is None:
                raise TransferError("No delete function configured")
            fns.delete(batch)
        except Exception as e:
            report.delete_failed = len(batch)
            report.delete_error = str(e)
            logger.error(f"Deleting {len(batch)} duplicates failed: {e}")
            trace.info(f"DELETE FAILED: batch of {len(batch)}: {e}")
            return

        report.deleted = len(batch)
        for item in items:
            if item.asset.readable_uri:
                trace.info(f"DELETED: {item.filename}")

    def execute(
        self,
        work_items: Iterable[SyncWorkItem],
        transfer_fns: TransferFunctions,
        progress: Optional[ProgressCallback] = None,
    ) -> TransferReport:
        """
        Execute work items.

        Args:
            work_items: Items in the order they should run
            transfer_fns: Functions performing the actual transfers
            progress: Called with the completed fraction after each step

        Returns:
            TransferReport with per-outcome counts
        """
        queue: deque[SyncWorkItem] = deque()
        deletes: list[DeleteDuplicateItem] = []
        for item in work_items:
            if isinstance(item, DeleteDuplicateItem):
                deletes.append(item)
            else:
                queue.append(item)

        report = TransferReport(total=len(queue))
        steps = len(queue) + (1 if deletes else 0)
        completed = 0

        self._notify(progress, 0.0)

        while queue:
            item = queue.popleft()
            try:
                self._run_item(item, transfer_fns, report)
            except Exception as e:
                report.record_failure(item, e)
                logger.warning(f"{item.kind.value} of {item.filename} failed: {e}")
                get_trace_logger().info(f"FAILED: {item.filename}: {e}")
            completed += 1
            self._notify(progress, completed / steps)

        if deletes:
            self._run_delete_batch(deletes, transfer_fns, report)
            completed += 1
            self._notify(progress, completed / steps)

        self._notify(progress, 0.0)

        logger.info(
            f"Transfers finished: {report.succeeded} succeeded, "
            f"{report.duplicates} duplicates, {report.failed} failed"
            + (f", {report.deleted} deleted" if deletes else "")
        )
        return report
