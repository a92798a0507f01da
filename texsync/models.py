"""Data models for texsync reconciliation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .utils import to_disabled_path


class Zone(str, Enum):
    """Ownership zone of a local file."""

    MANAGED = "managed"
    """Mirrored from the remote; subject to sync"""

    USER_RESERVED = "user_reserved"
    """Local-only custom content; never touched by sync"""


@dataclass(frozen=True)
class RemoteFileEntry:
    """A file in the remote sparse path at one revision."""

    path: str
    """Path relative to the sparse root (forward slashes)"""

    content_hash: str
    """Git blob SHA-1 of the content"""


@dataclass(frozen=True)
class LocalFileEntry:
    """A file found in the local target folder."""

    logical_path: str
    """Relative path with the disabled marker stripped"""

    content_hash: Optional[str]
    """Git blob SHA-1, None for user-reserved files (never hashed)"""

    enabled: bool
    """False when the on-disk name carries the disabled marker"""

    zone: Zone

    disk_path: str
    """Relative path exactly as it exists on disk"""


@dataclass(frozen=True)
class DownloadItem:
    """A file the applier has to fetch."""

    path: str
    """Remote (logical) path"""

    to_disabled: bool
    """Write the file under its disabled name"""

    content_hash: str
    """Expected git blob SHA-1 of the downloaded content"""

    @property
    def disk_path(self) -> str:
        """Relative destination path on disk."""
        if self.to_disabled:
            return to_disabled_path(self.path)
        return self.path


@dataclass(frozen=True)
class ReconciliationPlan:
    """Immutable set of operations converging the local folder to a revision."""

    revision: str
    to_download: tuple[DownloadItem, ...] = ()
    to_delete: tuple[str, ...] = ()
    """On-disk relative paths to remove"""

    up_to_date_count: int = 0
    skipped: tuple[str, ...] = ()
    """Paths left alone because they could not be read locally"""

    @property
    def is_up_to_date(self) -> bool:
        return not self.to_download and not self.to_delete


@dataclass
class SyncOutcome:
    """Summary of one apply run."""

    files_downloaded: int
    files_deleted: int
    files_skipped: int
    resulting_revision: str
    cancelled: bool = False
    skipped_paths: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert outcome to dictionary for JSON output."""
        return {
            "files_downloaded": self.files_downloaded,
            "files_deleted": self.files_deleted,
            "files_skipped": self.files_skipped,
            "resulting_revision": self.resulting_revision,
            "cancelled": self.cancelled,
            "skipped_paths": list(self.skipped_paths),
        }


@dataclass(frozen=True)
class SyncStatus:
    """Result of a read-only status check."""

    latest_revision: str
    files_to_download: int
    files_to_delete: int
    files_up_to_date: int

    @property
    def is_up_to_date(self) -> bool:
        return self.files_to_download == 0 and self.files_to_delete == 0

    def to_dict(self) -> dict:
        """Convert status to dictionary for JSON output."""
        return {
            "latest_revision": self.latest_revision,
            "files_to_download": self.files_to_download,
            "files_to_delete": self.files_to_delete,
            "files_up_to_date": self.files_up_to_date,
            "is_up_to_date": self.is_up_to_date,
        }
