"""File operations used when applying a reconciliation plan."""

import logging
import os
import tempfile
from pathlib import Path

from ..api import GitHubClient
from ..exceptions import DownloadError
from ..models import DownloadItem
from ..utils import (
    TEMP_FILE_PREFIX,
    TEMP_FILE_SUFFIX,
    git_blob_hash_stream,
)

logger = logging.getLogger(__name__)


class SyncOperations:
    """Writes and deletes single files inside a target folder."""

    def __init__(self, client: GitHubClient, root: Path):
        """Initialize sync operations.

        Args:
            client: GitHub client providing file content
            root: Target folder all relative paths are resolved against
        """
        self.client = client
        self.root = root

    def download_file(self, item: DownloadItem, revision: str) -> Path:
        """Download a file and move it into place atomically.

        Content is streamed to a hidden temporary file next to the
        destination, verified against the expected blob hash and renamed over
        the destination. A failure at any point leaves the destination as it
        was.

        Args:
            item: File to download
            revision: Revision the content is pinned to

        Returns:
            Path where the file was saved

        Raises:
            DownloadError: If the content does not match the expected hash
            RemoteError: If the content cannot be fetched
            OSError: If the file cannot be written
        """
        dest = self.root / item.disk_path
        dest.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=TEMP_FILE_PREFIX, suffix=TEMP_FILE_SUFFIX, dir=dest.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w+b") as f:
                size = self.client.download_file(item.path, revision, f)
                f.flush()
                f.seek(0)
                actual_hash = git_blob_hash_stream(f, size)
                if actual_hash != item.content_hash:
                    raise DownloadError(
                        f"Hash mismatch for {item.path}: expected "
                        f"{item.content_hash}, got {actual_hash}"
                    )
                os.fsync(f.fileno())
            os.replace(tmp_path, dest)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {item.disk_path} ({size} bytes)")
        return dest

    def delete_local(self, disk_path: str) -> bool:
        """Delete a file and prune directories it leaves empty.

        Args:
            disk_path: Relative path of the file to delete

        Returns:
            True if a file was removed, False if it was already gone

        Raises:
            OSError: If the file exists but cannot be removed
        """
        path = self.root / disk_path
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Already gone: {disk_path}")
            return False

        parent = path.parent
        while parent != self.root and self.root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                # Not empty
                break
            parent = parent.parent
        return True
