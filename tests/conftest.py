"""Shared fixtures for texsync tests."""

from pathlib import Path
from typing import BinaryIO, Optional

import pytest

from texsync.exceptions import NotFoundError
from texsync.models import RemoteFileEntry
from texsync.utils import git_blob_hash


class FakeRemote:
    """In-memory stand-in for GitHubClient."""

    def __init__(self, files: Optional[dict[str, bytes]] = None, revision="rev1"):
        self.files: dict[str, bytes] = dict(files or {})
        self.revision = revision
        self.downloads: list[str] = []
        self.closed = False

    def publish(self, files: dict[str, bytes], revision: str) -> None:
        """Replace the upstream content with a new revision."""
        self.files = dict(files)
        self.revision = revision

    def resolve_latest(self) -> str:
        return self.revision

    def list_entries(self, revision: str) -> list[RemoteFileEntry]:
        return [
            RemoteFileEntry(path=path, content_hash=git_blob_hash(data))
            for path, data in sorted(self.files.items())
        ]

    def download_file(self, path: str, revision: str, dest: BinaryIO) -> int:
        if path not in self.files:
            raise NotFoundError(f"Not found upstream: {path}")
        self.downloads.append(path)
        data = self.files[path]
        dest.write(data)
        return len(data)

    def close(self) -> None:
        self.closed = True


def write_files(root: Path, files: dict[str, bytes]) -> None:
    """Create files below root, making parent folders as needed."""
    for relative, data in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


def tree(root: Path) -> dict[str, bytes]:
    """Map every file below root (relative posix path) to its content."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def fake_remote():
    """Create an in-memory remote with no files."""
    return FakeRemote()


@pytest.fixture
def textures_dir(tmp_path):
    """Create an empty PCSX2 textures directory."""
    path = tmp_path / "textures"
    path.mkdir()
    return path
