"""File comparison logic for sync operations."""

import logging
from typing import Optional

from ..config import config
from ..models import DownloadItem, ReconciliationPlan, RemoteFileEntry
from ..utils import is_hidden_path, is_reserved_path
from .scanner import ScanResult

logger = logging.getLogger(__name__)


class FileComparator:
    """Compares a local scan against a remote listing.

    The comparison is a pure function of its inputs: one pass over the remote
    entries decides downloads, one pass over the local managed entries decides
    deletions. Remote paths are matched against on-disk names first and
    logical (marker stripped) names second, so a file whose real name starts
    with the disabled marker is not mistaken for a disabled texture. Hidden
    remote paths are ignored, matching the scanner.
    """

    def __init__(self, reserved_folder: Optional[str] = None):
        """Initialize file comparator.

        Args:
            reserved_folder: Top level folder excluded from sync decisions
                (uses config if not provided)
        """
        self.reserved_folder = reserved_folder or config.reserved_folder

    def compare(
        self,
        local: ScanResult,
        remote: list[RemoteFileEntry],
        revision: str,
    ) -> ReconciliationPlan:
        """Compute the plan that converges the local folder to ``remote``.

        Args:
            local: Result of DirectoryScanner.scan()
            remote: Remote entries at ``revision``
            revision: Revision the remote listing belongs to

        Returns:
            ReconciliationPlan with downloads in remote order and deletions
            sorted by path
        """
        remote_files = [
            entry
            for entry in remote
            if not is_reserved_path(entry.path, self.reserved_folder)
            and not is_hidden_path(entry.path)
        ]
        remote_paths = {entry.path for entry in remote_files}

        # Exact on-disk names take precedence over logical names: a remote
        # "-logo.png" is the local "-logo.png", not a disabled "logo.png"
        by_disk_path = {
            entry.disk_path: entry
            for entry in [*local.entries.values(), *local.shadowed]
        }
        unreadable_disk = {w.disk_path for w in local.warnings}
        unreadable = {w.logical_path: w.disk_path for w in local.warnings}

        to_download: list[DownloadItem] = []
        kept: set[str] = set()
        up_to_date = 0

        for remote_entry in remote_files:
            path = remote_entry.path
            local_entry = by_disk_path.get(path)
            if local_entry is None:
                candidate = local.entries.get(path)
                if candidate is not None and candidate.disk_path not in remote_paths:
                    local_entry = candidate

            if local_entry is None:
                if path in unreadable_disk or (
                    path in unreadable and unreadable[path] not in remote_paths
                ):
                    continue
                to_download.append(
                    DownloadItem(
                        path=path,
                        to_disabled=False,
                        content_hash=remote_entry.content_hash,
                    )
                )
                continue

            kept.add(local_entry.disk_path)
            if local_entry.content_hash == remote_entry.content_hash:
                up_to_date += 1
            else:
                # Refresh content but keep the disabled marker if present
                to_download.append(
                    DownloadItem(
                        path=path,
                        to_disabled=local_entry.disk_path != path,
                        content_hash=remote_entry.content_hash,
                    )
                )

        # A path that is written by this plan is never deleted by it
        written = {item.disk_path for item in to_download}
        to_delete = sorted(
            disk_path
            for disk_path in by_disk_path
            if disk_path not in kept and disk_path not in written
        )

        plan = ReconciliationPlan(
            revision=revision,
            to_download=tuple(to_download),
            to_delete=tuple(to_delete),
            up_to_date_count=up_to_date,
            skipped=tuple(sorted(w.disk_path for w in local.warnings)),
        )
        logger.debug(
            "Plan for %s: %d to download, %d to delete, %d up to date, %d skipped",
            revision,
            len(plan.to_download),
            len(plan.to_delete),
            plan.up_to_date_count,
            len(plan.skipped),
        )
        return plan
