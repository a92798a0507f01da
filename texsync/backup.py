"""Handling of a target folder that already exists before installation."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .exceptions import FilesystemError

logger = logging.getLogger(__name__)


class BackupManager:
    """Backs up or removes a pre-existing target folder.

    Installation never writes over an existing folder: the caller picks
    exactly one of backup() or delete() first.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """Initialize backup manager.

        Args:
            clock: Source of the backup timestamp (defaults to datetime.now)
        """
        self.clock = clock or datetime.now

    def exists(self, path: Path) -> bool:
        """Check whether the folder exists."""
        return path.exists()

    def _backup_path(self, path: Path) -> Path:
        timestamp = self.clock().strftime("%Y%m%d_%H%M%S")
        candidate = path.with_name(f"{path.name}_backup_{timestamp}")
        counter = 1
        while candidate.exists():
            candidate = path.with_name(f"{path.name}_backup_{timestamp}_{counter}")
            counter += 1
        return candidate

    def backup(self, path: Path) -> str:
        """Rename the folder to a timestamped sibling.

        Args:
            path: Folder to move aside

        Returns:
            Name of the backup folder

        Raises:
            FilesystemError: If the folder is missing or cannot be renamed
        """
        if not path.exists():
            raise FilesystemError(f"Nothing to back up, {path} does not exist")

        backup_path = self._backup_path(path)
        try:
            path.rename(backup_path)
        except OSError as e:
            raise FilesystemError(f"Failed to back up {path}: {e}") from e

        logger.info(f"Backed up {path} to {backup_path.name}")
        return backup_path.name

    def delete(self, path: Path) -> None:
        """Remove the folder and everything in it.

        Raises:
            FilesystemError: If the folder cannot be removed
        """
        if not path.exists():
            logger.debug(f"Nothing to delete at {path}")
            return
        try:
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            raise FilesystemError(f"Failed to delete {path}: {e}") from e

        logger.info(f"Deleted {path}")
