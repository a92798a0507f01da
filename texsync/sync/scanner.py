"""Directory scanning utilities for sync operations."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config import config
from ..exceptions import FilesystemError
from ..models import LocalFileEntry, Zone
from ..utils import (
    git_blob_hash_file,
    is_disabled_name,
    is_reserved_path,
    to_logical_path,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanWarning:
    """A file that could not be read during a scan."""

    disk_path: str
    """Relative path as it exists on disk"""

    logical_path: str
    """Relative path with the disabled marker stripped"""

    error: str


@dataclass
class ScanResult:
    """Index of a local target folder."""

    entries: dict[str, LocalFileEntry] = field(default_factory=dict)
    """Managed entries keyed by logical path (enabled variant wins)"""

    shadowed: list[LocalFileEntry] = field(default_factory=list)
    """Disabled duplicates of logical paths that also exist enabled"""

    reserved: list[LocalFileEntry] = field(default_factory=list)
    """Entries in the user-reserved folder, for reporting only"""

    warnings: list[ScanWarning] = field(default_factory=list)
    """Files that could not be read"""

    @property
    def managed_count(self) -> int:
        return len(self.entries) + len(self.shadowed)


class DirectoryScanner:
    """Scans a target folder and classifies its files.

    Files under the reserved folder are recorded without hashing. Every other
    file is hashed the way git hashes blobs so it can be compared against the
    remote tree. Hidden files and folders (dot-prefixed) are ignored, which
    also keeps in-flight temporary downloads out of the index.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> result = scanner.scan(Path("/pcsx2/textures/SLUS-21770"))
        >>> len(result.entries)
        1234
    """

    def __init__(self, reserved_folder: Optional[str] = None):
        """Initialize directory scanner.

        Args:
            reserved_folder: Name of the top level folder that sync never
                touches (uses config if not provided)
        """
        self.reserved_folder = reserved_folder or config.reserved_folder

    def scan(self, root: Path) -> ScanResult:
        """Recursively scan a target folder.

        Args:
            root: Target folder (the sparse root on disk)

        Returns:
            ScanResult with managed, shadowed and reserved entries

        Raises:
            FilesystemError: If the root is missing or cannot be listed
        """
        if not root.is_dir():
            raise FilesystemError(f"Target folder not found: {root}")

        start = time.time()
        result = ScanResult()
        self._scan_directory(root, root, result, top_level=True)

        logger.debug(
            "Scanned %s in %.2fs: %d managed, %d reserved, %d unreadable",
            root,
            time.time() - start,
            result.managed_count,
            len(result.reserved),
            len(result.warnings),
        )
        return result

    def _scan_directory(
        self, directory: Path, root: Path, result: ScanResult, top_level: bool = False
    ) -> None:
        try:
            items = sorted(directory.iterdir())
        except OSError as e:
            if top_level:
                raise FilesystemError(f"Cannot read target folder {root}: {e}") from e
            # An unreadable sub-folder must not block the rest of the scan
            relative = directory.relative_to(root).as_posix()
            logger.warning(f"Skipping unreadable directory {relative}: {e}")
            result.warnings.append(
                ScanWarning(
                    disk_path=relative, logical_path=relative, error=str(e)
                )
            )
            return

        for item in items:
            if item.name.startswith("."):
                continue
            if item.is_dir():
                self._scan_directory(item, root, result)
            elif item.is_file():
                self._add_file(item, root, result)

    def _add_file(self, file_path: Path, root: Path, result: ScanResult) -> None:
        disk_path = file_path.relative_to(root).as_posix()

        if is_reserved_path(disk_path, self.reserved_folder):
            result.reserved.append(
                LocalFileEntry(
                    logical_path=disk_path,
                    content_hash=None,
                    enabled=True,
                    zone=Zone.USER_RESERVED,
                    disk_path=disk_path,
                )
            )
            return

        logical_path = to_logical_path(disk_path)
        enabled = not is_disabled_name(file_path.name)

        try:
            content_hash = git_blob_hash_file(file_path)
        except OSError as e:
            logger.warning(f"Cannot read {disk_path}: {e}")
            result.warnings.append(
                ScanWarning(
                    disk_path=disk_path, logical_path=logical_path, error=str(e)
                )
            )
            return

        entry = LocalFileEntry(
            logical_path=logical_path,
            content_hash=content_hash,
            enabled=enabled,
            zone=Zone.MANAGED,
            disk_path=disk_path,
        )

        existing = result.entries.get(logical_path)
        if existing is None:
            result.entries[logical_path] = entry
        elif enabled and not existing.enabled:
            # Enabled variant is authoritative; the disabled one is a duplicate
            result.shadowed.append(existing)
            result.entries[logical_path] = entry
        else:
            result.shadowed.append(entry)
