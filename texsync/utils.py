"""Utility functions for texsync."""

import hashlib
from pathlib import Path
from typing import BinaryIO

# =============================================================================
# Constants for sync operations
# =============================================================================

# Marker prefixed to a file name to disable the texture in the emulator
DISABLED_PREFIX: str = "-"

# Retry configuration for per-file operations
DEFAULT_FILE_RETRIES: int = 3
DEFAULT_FILE_RETRY_DELAY: float = 0.5  # seconds

# Read size when hashing local files
HASH_CHUNK_SIZE: int = 64 * 1024

# Prefix and suffix of in-flight download files
TEMP_FILE_PREFIX: str = ".texsync-"
TEMP_FILE_SUFFIX: str = ".part"


# =============================================================================
# Hash calculation utilities
# =============================================================================


def git_blob_hash(data: bytes) -> str:
    """Calculate the git blob SHA-1 of a byte string.

    Git hashes a blob as ``sha1(b"blob <size>\\0" + content)``, which is the
    value GitHub reports for each file in a tree listing.

    Args:
        data: File content

    Returns:
        Hex encoded SHA-1 digest

    Examples:
        >>> git_blob_hash(b"")
        'e69de29bb2d1d6434b8b29ae775ad8c2e48c5391'
        >>> git_blob_hash(b"hello\\n")
        'ce013625030ba8dba906f756967f9e9ca394464a'
    """
    hasher = hashlib.sha1()
    hasher.update(f"blob {len(data)}\0".encode())
    hasher.update(data)
    return hasher.hexdigest()


def git_blob_hash_stream(stream: BinaryIO, size: int) -> str:
    """Calculate the git blob SHA-1 of an open binary stream.

    Args:
        stream: Stream positioned at the start of the content
        size: Total content size in bytes

    Returns:
        Hex encoded SHA-1 digest
    """
    hasher = hashlib.sha1()
    hasher.update(f"blob {size}\0".encode())
    for chunk in iter(lambda: stream.read(HASH_CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def git_blob_hash_file(path: Path) -> str:
    """Calculate the git blob SHA-1 of a file on disk.

    Raises:
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        size = path.stat().st_size
        return git_blob_hash_stream(f, size)


# =============================================================================
# Disabled file name utilities
# =============================================================================


def is_disabled_name(filename: str) -> bool:
    """Check whether a file name carries the disabled marker.

    Examples:
        >>> is_disabled_name("-helmet.png")
        True
        >>> is_disabled_name("helmet.png")
        False
    """
    return filename.startswith(DISABLED_PREFIX) and len(filename) > len(
        DISABLED_PREFIX
    )


def to_disabled_path(path: str) -> str:
    """Return the disabled form of a relative path.

    Only the final path component is prefixed.

    Examples:
        >>> to_disabled_path("team/helmet.png")
        'team/-helmet.png'
        >>> to_disabled_path("helmet.png")
        '-helmet.png'
    """
    head, sep, name = path.rpartition("/")
    return f"{head}{sep}{DISABLED_PREFIX}{name}"


def to_logical_path(path: str) -> str:
    """Strip the disabled marker from the final component of a path.

    Paths that are not disabled are returned unchanged.

    Examples:
        >>> to_logical_path("team/-helmet.png")
        'team/helmet.png'
        >>> to_logical_path("team/helmet.png")
        'team/helmet.png'
    """
    head, sep, name = path.rpartition("/")
    if is_disabled_name(name):
        return f"{head}{sep}{name[len(DISABLED_PREFIX):]}"
    return path


def is_reserved_path(path: str, reserved_folder: str) -> bool:
    """Check whether a relative path lies in the user-reserved folder.

    Examples:
        >>> is_reserved_path("user-customs/logo.png", "user-customs")
        True
        >>> is_reserved_path("team/user-customs.png", "user-customs")
        False
    """
    return path.split("/", 1)[0] == reserved_folder




def is_hidden_path(path: str) -> bool:
    """Check whether any component of a relative path is dot-prefixed.

    Hidden files are never mirrored; this also covers in-flight downloads.

    Examples:
        >>> is_hidden_path("team/.gitkeep")
        True
        >>> is_hidden_path("team/helmet.png")
        False
    """
    return any(part.startswith(".") for part in path.split("/"))
