"""Custom exceptions for texsync."""


class TexSyncError(Exception):
    """Base exception for all texsync errors."""

    pass


class ConfigError(TexSyncError):
    """Configuration error (invalid repository settings, bad config file)."""

    pass


class RemoteError(TexSyncError):
    """Base exception for failures talking to the upstream repository."""

    pass


class UnreachableError(RemoteError):
    """Remote is unreachable (network failure, timeout, server error)."""

    pass


class RateLimitError(UnreachableError):
    """GitHub API rate limit exceeded."""

    pass


class AuthError(RemoteError):
    """Authentication failed or access to the repository was denied."""

    pass


class NotFoundError(RemoteError):
    """Target repository, revision or sparse path does not exist upstream."""

    pass


class InvalidResponseError(RemoteError):
    """Remote returned metadata that could not be understood."""

    pass


class DownloadError(RemoteError):
    """A single file could not be downloaded or failed verification."""

    pass


class FilesystemError(TexSyncError):
    """Local filesystem error (permission denied, disk full, locked file)."""

    pass


class ConflictError(TexSyncError):
    """A pre-existing target folder blocks the first installation."""

    pass


class CancelledError(TexSyncError):
    """The operation was cancelled before it could start."""

    pass
