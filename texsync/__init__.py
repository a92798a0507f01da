"""texsync - keep a PS2 texture folder in sync with its upstream repository."""

from .api import GitHubClient
from .backup import BackupManager
from .exceptions import (
    AuthError,
    CancelledError,
    ConfigError,
    ConflictError,
    DownloadError,
    FilesystemError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    RemoteError,
    TexSyncError,
    UnreachableError,
)
from .models import (
    DownloadItem,
    LocalFileEntry,
    ReconciliationPlan,
    RemoteFileEntry,
    SyncOutcome,
    SyncStatus,
    Zone,
)
from .utils import git_blob_hash

__version__ = "0.1.0"

__all__ = [
    "GitHubClient",
    "BackupManager",
    "TexSyncError",
    "AuthError",
    "CancelledError",
    "ConfigError",
    "ConflictError",
    "DownloadError",
    "FilesystemError",
    "InvalidResponseError",
    "NotFoundError",
    "RateLimitError",
    "RemoteError",
    "UnreachableError",
    "DownloadItem",
    "LocalFileEntry",
    "ReconciliationPlan",
    "RemoteFileEntry",
    "SyncOutcome",
    "SyncStatus",
    "Zone",
    "git_blob_hash",
]
