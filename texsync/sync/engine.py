"""Core sync engine exposing install, status and sync operations."""

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterator, Optional

from ..api import GitHubClient
from ..backup import BackupManager
from ..config import config
from ..exceptions import CancelledError, ConflictError, FilesystemError
from ..models import ReconciliationPlan, RemoteFileEntry, SyncOutcome, SyncStatus
from ..utils import DEFAULT_FILE_RETRIES, DEFAULT_FILE_RETRY_DELAY
from .applier import PlanApplier
from .comparator import FileComparator
from .operations import SyncOperations
from .progress import (
    CancelToken,
    ProgressCallback,
    ProgressReporter,
    SyncProgressEvent,
    SyncStage,
)
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_directory_locks: dict[str, threading.Lock] = {}


def directory_lock(path: Path) -> threading.Lock:
    """Return the process wide lock guarding a target folder."""
    key = str(path.resolve())
    with _registry_lock:
        lock = _directory_locks.get(key)
        if lock is None:
            lock = _directory_locks[key] = threading.Lock()
        return lock


class SyncJob:
    """Handle on a sync or installation running on a worker thread.

    Examples:
        >>> job = engine.start_sync("/pcsx2/textures")
        >>> for event in job.events():
        ...     print(event.stage.value, event.message)
        >>> outcome = job.result()
    """

    def __init__(
        self,
        future: "Future[SyncOutcome]",
        channel: "queue.Queue[SyncProgressEvent]",
        reporter: ProgressReporter,
        cancel_token: CancelToken,
    ):
        self._future = future
        self._channel = channel
        self._reporter = reporter
        self.cancel_token = cancel_token

    def events(self, timeout: Optional[float] = None) -> Iterator[SyncProgressEvent]:
        """Yield progress events in emission order up to the terminal event.

        Args:
            timeout: Maximum seconds to wait for each event

        Raises:
            queue.Empty: If no event arrives within ``timeout``
        """
        while True:
            event = self._channel.get(timeout=timeout)
            yield event
            if event.is_terminal:
                return

    @property
    def final_event(self) -> Optional[SyncProgressEvent]:
        """The terminal event, once the job has finished."""
        return self._reporter.final_event

    def cancel(self) -> None:
        """Request cancellation; honoured between file operations."""
        self.cancel_token.cancel()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> SyncOutcome:
        """Wait for the job and return its outcome.

        Raises:
            TexSyncError: The fatal error that ended the job
        """
        return self._future.result(timeout=timeout)


class SyncEngine:
    """Reconciles a local texture folder with the upstream repository.

    Only one workflow runs against a given target folder at a time; callers
    touching the same folder from other threads block until it is free.
    """

    def __init__(
        self,
        client: Optional[GitHubClient] = None,
        backup_manager: Optional[BackupManager] = None,
        target_folder: Optional[str] = None,
        reserved_folder: Optional[str] = None,
        file_retries: int = DEFAULT_FILE_RETRIES,
        retry_delay: float = DEFAULT_FILE_RETRY_DELAY,
        max_workers: int = 2,
    ):
        """Initialize sync engine.

        Args:
            client: GitHub client (created from config if not provided)
            backup_manager: Handles pre-existing folders at install time
            target_folder: Folder name inside the textures directory
            reserved_folder: Folder inside the target that sync never touches
            file_retries: Attempts per file before it is skipped
            retry_delay: Base delay between per-file attempts
            max_workers: Worker threads for background jobs
        """
        self.client = client or GitHubClient()
        self.backup_manager = backup_manager or BackupManager()
        self.target_folder = target_folder or config.target_folder
        self.reserved_folder = reserved_folder or config.reserved_folder
        self.file_retries = file_retries
        self.retry_delay = retry_delay
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def close(self) -> None:
        """Wait for background jobs and release the HTTP client."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.client.close()

    def __enter__(self) -> "SyncEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def target_dir(self, textures_dir: "str | Path") -> Path:
        """Target folder inside a textures directory."""
        return Path(textures_dir) / self.target_folder

    # =========================
    # Remote and folder checks
    # =========================

    def resolve_latest_revision(self) -> str:
        """Resolve the latest upstream revision."""
        return self.client.resolve_latest()

    def check_existing_folder(self, textures_dir: "str | Path") -> bool:
        """Check whether the target folder already exists."""
        return self.backup_manager.exists(self.target_dir(textures_dir))

    def backup_existing_folder(self, textures_dir: "str | Path") -> str:
        """Rename an existing target folder to a timestamped backup.

        Returns:
            Name of the backup folder
        """
        target = self.target_dir(textures_dir)
        with directory_lock(target):
            return self.backup_manager.backup(target)

    def delete_existing_folder(self, textures_dir: "str | Path") -> None:
        """Delete an existing target folder."""
        target = self.target_dir(textures_dir)
        with directory_lock(target):
            self.backup_manager.delete(target)

    # =========================
    # Planning
    # =========================

    def _fetch_remote(
        self,
        reporter: ProgressReporter,
        cancel_token: Optional[CancelToken] = None,
    ) -> tuple[str, list[RemoteFileEntry]]:
        """Resolve the latest revision and list its files."""
        reporter.emit(SyncStage.FETCHING, "Fetching repository information...")
        fetch_start = time.time()
        revision = self.client.resolve_latest()
        remote_files = self.client.list_entries(revision)
        logger.debug(
            f"Fetched {len(remote_files)} remote entries at {revision} "
            f"in {time.time() - fetch_start:.2f}s"
        )
        reporter.emit(
            SyncStage.SCANNING, f"Found {len(remote_files)} files in repository"
        )
        _check_cancelled(cancel_token)
        return revision, remote_files

    def _plan_against(
        self,
        target: Path,
        revision: str,
        remote_files: list[RemoteFileEntry],
        reporter: ProgressReporter,
        cancel_token: Optional[CancelToken] = None,
    ) -> ReconciliationPlan:
        """Scan the target and compare it with a fetched remote index."""
        reporter.emit(SyncStage.SCANNING, "Scanning local files...")
        scan = DirectoryScanner(self.reserved_folder).scan(target)
        reporter.emit(
            SyncStage.SCANNING,
            f"Found {scan.managed_count} local files "
            f"(excluding {self.reserved_folder})",
        )
        _check_cancelled(cancel_token)

        plan = FileComparator(self.reserved_folder).compare(
            scan, remote_files, revision
        )
        reporter.emit(
            SyncStage.COMPARING,
            f"Changes: {len(plan.to_download)} files to download, "
            f"{len(plan.to_delete)} to delete, {plan.up_to_date_count} up to date",
        )
        return plan

    def _build_plan(
        self,
        target: Path,
        reporter: ProgressReporter,
        cancel_token: Optional[CancelToken] = None,
    ) -> ReconciliationPlan:
        """Fetch the remote index, scan the target and compare them."""
        revision, remote_files = self._fetch_remote(reporter, cancel_token)
        return self._plan_against(
            target, revision, remote_files, reporter, cancel_token
        )

    def check_sync_status(self, textures_dir: "str | Path") -> SyncStatus:
        """Compare the target folder with the latest revision without changes.

        Raises:
            FilesystemError: If the target folder is missing or unreadable
            RemoteError: If the remote index cannot be fetched
        """
        target = self.target_dir(textures_dir)
        with directory_lock(target):
            plan = self._build_plan(target, ProgressReporter())
        return SyncStatus(
            latest_revision=plan.revision,
            files_to_download=len(plan.to_download),
            files_to_delete=len(plan.to_delete),
            files_up_to_date=plan.up_to_date_count,
        )

    # =========================
    # Sync and installation
    # =========================

    def _apply(
        self,
        target: Path,
        plan: ReconciliationPlan,
        reporter: ProgressReporter,
        cancel_token: Optional[CancelToken],
    ) -> SyncOutcome:
        _check_cancelled(cancel_token)
        applier = PlanApplier(
            SyncOperations(self.client, target),
            file_retries=self.file_retries,
            retry_delay=self.retry_delay,
        )
        return applier.apply(plan, reporter, cancel_token)

    def _sync_locked(
        self,
        target: Path,
        reporter: ProgressReporter,
        cancel_token: Optional[CancelToken],
    ) -> SyncOutcome:
        plan = self._build_plan(target, reporter, cancel_token)
        outcome = self._apply(target, plan, reporter, cancel_token)

        if outcome.cancelled:
            reporter.complete(
                f"Sync cancelled. Downloaded: {outcome.files_downloaded}, "
                f"Deleted: {outcome.files_deleted}"
            )
        else:
            reporter.complete(
                f"Sync complete! Downloaded: {outcome.files_downloaded}, "
                f"Deleted: {outcome.files_deleted}, "
                f"Skipped: {outcome.files_skipped}"
            )
        return outcome

    def _install_locked(
        self,
        target: Path,
        reporter: ProgressReporter,
        cancel_token: Optional[CancelToken],
    ) -> SyncOutcome:
        if self.backup_manager.exists(target):
            raise ConflictError(
                f"{target} already exists - back it up or delete it first"
            )
        if not target.parent.is_dir():
            raise FilesystemError(f"Textures directory not found: {target.parent}")

        # The folder is only created once the remote index is known, so a
        # failed fetch leaves nothing behind to block the next attempt
        revision, remote_files = self._fetch_remote(reporter, cancel_token)
        try:
            target.mkdir()
        except OSError as e:
            raise FilesystemError(f"Failed to create {target}: {e}") from e

        try:
            plan = self._plan_against(
                target, revision, remote_files, reporter, cancel_token
            )
            _check_cancelled(cancel_token)
        except Exception:
            # Nothing was written yet
            target.rmdir()
            raise
        outcome = self._apply(target, plan, reporter, cancel_token)

        if outcome.cancelled:
            reporter.complete(
                f"Installation cancelled after {outcome.files_downloaded} files"
            )
        else:
            reporter.complete(
                f"Installation complete! Downloaded {outcome.files_downloaded} "
                f"files, skipped {outcome.files_skipped}"
            )
        return outcome

    def _run(
        self,
        workflow: Callable[
            [Path, ProgressReporter, Optional[CancelToken]], SyncOutcome
        ],
        name: str,
        textures_dir: "str | Path",
        reporter: ProgressReporter,
        cancel_token: Optional[CancelToken],
    ) -> SyncOutcome:
        target = self.target_dir(textures_dir)
        with directory_lock(target):
            logger.info(f"Starting {name} of {target}")
            try:
                return workflow(target, reporter, cancel_token)
            except CancelledError:
                reporter.complete(f"{name.capitalize()} cancelled")
                raise
            except Exception as e:
                # Consumers read until the terminal event, so always emit it
                reporter.complete(f"{name.capitalize()} failed: {e}")
                raise

    def run_sync(
        self,
        textures_dir: "str | Path",
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> SyncOutcome:
        """Synchronize the target folder with the latest revision.

        Args:
            textures_dir: Textures directory holding the target folder
            on_progress: Called with every progress event
            cancel_token: Polled between stages and file operations

        Returns:
            SyncOutcome; ``cancelled`` is set if the token fired during apply

        Raises:
            CancelledError: If cancelled before any file was touched
            FilesystemError: If the target folder is missing or unreadable
            RemoteError: If the remote index cannot be fetched
        """
        return self._run(
            self._sync_locked,
            "sync",
            textures_dir,
            ProgressReporter(callback=on_progress),
            cancel_token,
        )

    def install(
        self,
        textures_dir: "str | Path",
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> SyncOutcome:
        """Perform the first installation into a new target folder.

        Raises:
            ConflictError: If the target folder already exists
            FilesystemError: If the textures directory is missing
            RemoteError: If the remote index cannot be fetched
        """
        return self._run(
            self._install_locked,
            "installation",
            textures_dir,
            ProgressReporter(callback=on_progress),
            cancel_token,
        )

    def _start(self, method: Callable[..., SyncOutcome], textures_dir) -> SyncJob:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="texsync"
            )
        channel: "queue.Queue[SyncProgressEvent]" = queue.Queue()
        reporter = ProgressReporter(channel=channel)
        cancel_token = CancelToken()
        future = self._executor.submit(
            method, textures_dir, reporter, cancel_token
        )
        return SyncJob(future, channel, reporter, cancel_token)

    def _run_sync_job(self, textures_dir, reporter, cancel_token) -> SyncOutcome:
        return self._run(
            self._sync_locked, "sync", textures_dir, reporter, cancel_token
        )

    def _run_install_job(self, textures_dir, reporter, cancel_token) -> SyncOutcome:
        return self._run(
            self._install_locked, "installation", textures_dir, reporter, cancel_token
        )

    def start_sync(self, textures_dir: "str | Path") -> SyncJob:
        """Run a sync on a worker thread.

        Returns:
            SyncJob streaming progress events and holding the outcome
        """
        return self._start(self._run_sync_job, textures_dir)

    def start_installation(self, textures_dir: "str | Path") -> SyncJob:
        """Run the first installation on a worker thread.

        A pre-existing target folder makes the job fail with ConflictError.
        """
        return self._start(self._run_install_job, textures_dir)


def _check_cancelled(cancel_token: Optional[CancelToken]) -> None:
    if cancel_token is not None and cancel_token.cancelled:
        raise CancelledError("Operation cancelled before any file was changed")
