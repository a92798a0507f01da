"""Execution of reconciliation plans against the filesystem."""

import logging
import time
from functools import partial
from typing import Any, Callable, Optional

from ..exceptions import DownloadError, RemoteError, UnreachableError
from ..models import ReconciliationPlan, SyncOutcome
from ..utils import DEFAULT_FILE_RETRIES, DEFAULT_FILE_RETRY_DELAY
from .operations import SyncOperations
from .progress import CancelToken, ProgressReporter, SyncStage

logger = logging.getLogger(__name__)

# Errors worth another attempt for the same file
_TRANSIENT_ERRORS = (UnreachableError, DownloadError, OSError)

# Returned by _attempt when a file has to be skipped
_SKIPPED = object()


class PlanApplier:
    """Applies a ReconciliationPlan: all downloads first, then deletions.

    A failing file is retried a few times and then skipped; it never aborts
    the run. Cancellation is checked between files only, so an operation that
    has started always finishes.
    """

    def __init__(
        self,
        operations: SyncOperations,
        file_retries: int = DEFAULT_FILE_RETRIES,
        retry_delay: float = DEFAULT_FILE_RETRY_DELAY,
    ):
        """Initialize plan applier.

        Args:
            operations: File operations bound to the target folder
            file_retries: Attempts per file before it is skipped
            retry_delay: Base delay between attempts (grows linearly)
        """
        self.operations = operations
        self.file_retries = max(1, file_retries)
        self.retry_delay = retry_delay

    def _attempt(self, description: str, action: Callable[[], Any]) -> Any:
        """Run a single-file action with retries.

        Returns:
            The action's result, or _SKIPPED if the file has to be skipped
        """
        for attempt in range(1, self.file_retries + 1):
            try:
                return action()
            except _TRANSIENT_ERRORS as e:
                if attempt == self.file_retries:
                    logger.warning(
                        f"Giving up on {description} after {attempt} attempt(s): {e}"
                    )
                    return _SKIPPED
                logger.debug(f"Attempt {attempt} of {description} failed: {e}")
                if self.retry_delay > 0:
                    time.sleep(self.retry_delay * attempt)
            except RemoteError as e:
                logger.warning(f"Skipping {description}: {e}")
                return _SKIPPED
        return _SKIPPED

    def apply(
        self,
        plan: ReconciliationPlan,
        reporter: Optional[ProgressReporter] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> SyncOutcome:
        """Apply a plan.

        Args:
            plan: Plan to apply; consumed once
            reporter: Receives one event per processed file
            cancel_token: Polled between file operations

        Returns:
            SyncOutcome reflecting the operations actually completed
        """
        reporter = reporter or ProgressReporter()
        skipped_paths = list(plan.skipped)
        downloaded = 0
        deleted = 0

        def outcome(cancelled: bool = False) -> SyncOutcome:
            return SyncOutcome(
                files_downloaded=downloaded,
                files_deleted=deleted,
                files_skipped=len(skipped_paths),
                resulting_revision=plan.revision,
                cancelled=cancelled,
                skipped_paths=skipped_paths,
            )

        def is_cancelled() -> bool:
            if cancel_token is not None and cancel_token.cancelled:
                logger.info(
                    f"Sync cancelled after {downloaded} download(s) and "
                    f"{deleted} deletion(s)"
                )
                return True
            return False

        total = len(plan.to_download)
        for index, item in enumerate(plan.to_download, start=1):
            if is_cancelled():
                return outcome(cancelled=True)

            result = self._attempt(
                f"download of {item.disk_path}",
                partial(self.operations.download_file, item, plan.revision),
            )
            if result is not _SKIPPED:
                downloaded += 1
                message = f"Downloaded: {item.disk_path}"
            else:
                skipped_paths.append(item.disk_path)
                message = f"Skipped: {item.disk_path}"
            reporter.emit(SyncStage.DOWNLOADING, message, current=index, total=total)

        total = len(plan.to_delete)
        for index, disk_path in enumerate(plan.to_delete, start=1):
            if is_cancelled():
                return outcome(cancelled=True)

            result = self._attempt(
                f"deletion of {disk_path}",
                partial(self.operations.delete_local, disk_path),
            )
            if result is not _SKIPPED:
                if result:
                    deleted += 1
                message = f"Deleted: {disk_path}"
            else:
                skipped_paths.append(disk_path)
                message = f"Skipped: {disk_path}"
            reporter.emit(SyncStage.DELETING, message, current=index, total=total)

        return outcome()
