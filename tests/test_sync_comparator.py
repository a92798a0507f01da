"""Unit tests for FileComparator."""

import pytest

from texsync.models import LocalFileEntry, RemoteFileEntry, Zone
from texsync.sync.comparator import FileComparator
from texsync.sync.scanner import ScanResult, ScanWarning


def local(disk_path, content_hash, logical_path=None, enabled=True):
    """Create a managed local entry."""
    return LocalFileEntry(
        logical_path=logical_path or disk_path,
        content_hash=content_hash,
        enabled=enabled,
        zone=Zone.MANAGED,
        disk_path=disk_path,
    )


def remote(path, content_hash):
    return RemoteFileEntry(path=path, content_hash=content_hash)


@pytest.fixture
def comparator():
    return FileComparator(reserved_folder="user-customs")


class TestFileComparator:
    """Tests for FileComparator.compare."""

    def test_empty_local_downloads_everything(self, comparator):
        remote_files = [remote("a.png", "h1"), remote("b/c.png", "h2")]

        plan = comparator.compare(ScanResult(), remote_files, "rev1")

        assert plan.revision == "rev1"
        assert [i.path for i in plan.to_download] == ["a.png", "b/c.png"]
        assert all(not i.to_disabled for i in plan.to_download)
        assert [i.content_hash for i in plan.to_download] == ["h1", "h2"]
        assert plan.to_delete == ()

    def test_mixed_changes(self, comparator):
        """Test unchanged, modified, removed and new files together."""
        scan = ScanResult(
            entries={
                "a.png": local("a.png", "h1"),
                "b.png": local("b.png", "h2"),
                "c.png": local("c.png", "h3"),
            }
        )
        remote_files = [
            remote("a.png", "h1"),
            remote("b.png", "h2x"),
            remote("d.png", "h4"),
        ]

        plan = comparator.compare(scan, remote_files, "rev2")

        assert [i.path for i in plan.to_download] == ["b.png", "d.png"]
        assert plan.to_delete == ("c.png",)
        assert plan.up_to_date_count == 1
        assert not plan.is_up_to_date

    def test_disabled_file_refreshed_under_disabled_name(self, comparator):
        """Test that a changed disabled texture stays disabled."""
        scan = ScanResult(
            entries={
                "team/helmet.png": local(
                    "team/-helmet.png",
                    "old",
                    logical_path="team/helmet.png",
                    enabled=False,
                )
            }
        )

        plan = comparator.compare(scan, [remote("team/helmet.png", "new")], "r")

        assert len(plan.to_download) == 1
        item = plan.to_download[0]
        assert item.to_disabled is True
        assert item.disk_path == "team/-helmet.png"
        assert plan.to_delete == ()

    def test_unchanged_disabled_file_is_up_to_date(self, comparator):
        scan = ScanResult(
            entries={
                "x.png": local("-x.png", "h", logical_path="x.png", enabled=False)
            }
        )

        plan = comparator.compare(scan, [remote("x.png", "h")], "r")

        assert plan.is_up_to_date
        assert plan.up_to_date_count == 1

    def test_disabled_file_removed_upstream_is_deleted(self, comparator):
        scan = ScanResult(
            entries={
                "x.png": local("-x.png", "h", logical_path="x.png", enabled=False)
            }
        )

        plan = comparator.compare(scan, [], "r")

        assert plan.to_delete == ("-x.png",)

    def test_shadowed_duplicate_is_deleted(self, comparator):
        """Test that the disabled duplicate of an enabled file is removed."""
        scan = ScanResult(
            entries={"x.png": local("x.png", "h")},
            shadowed=[local("-x.png", "h", logical_path="x.png", enabled=False)],
        )

        plan = comparator.compare(scan, [remote("x.png", "h")], "r")

        assert plan.to_download == ()
        assert plan.to_delete == ("-x.png",)

    def test_reserved_zone_is_isolated(self, comparator):
        """Test that reserved files are neither downloaded nor deleted."""
        scan = ScanResult(
            reserved=[
                LocalFileEntry(
                    logical_path="user-customs/logo.png",
                    content_hash=None,
                    enabled=True,
                    zone=Zone.USER_RESERVED,
                    disk_path="user-customs/logo.png",
                )
            ]
        )
        remote_files = [
            remote("user-customs/upstream.png", "h1"),
            remote("a.png", "h2"),
        ]

        plan = comparator.compare(scan, remote_files, "r")

        assert [i.path for i in plan.to_download] == ["a.png"]
        assert plan.to_delete == ()

    def test_unreadable_file_is_skipped(self, comparator):
        """Test that an unreadable local file is neither overwritten nor deleted."""
        scan = ScanResult(
            warnings=[
                ScanWarning(
                    disk_path="team/-locked.png",
                    logical_path="team/locked.png",
                    error="Permission denied",
                ),
                ScanWarning(
                    disk_path="gone.png", logical_path="gone.png", error="EIO"
                ),
            ]
        )

        plan = comparator.compare(scan, [remote("team/locked.png", "h")], "r")

        assert plan.to_download == ()
        assert plan.to_delete == ()
        assert plan.skipped == ("gone.png", "team/-locked.png")

    def test_deletions_are_sorted(self, comparator):
        scan = ScanResult(
            entries={
                "z.png": local("z.png", "h"),
                "a/b.png": local("a/b.png", "h"),
                "m.png": local("m.png", "h"),
            }
        )

        plan = comparator.compare(scan, [], "r")

        assert plan.to_delete == ("a/b.png", "m.png", "z.png")

    def test_compare_is_deterministic(self, comparator):
        scan = ScanResult(
            entries={"a.png": local("a.png", "h1"), "b.png": local("b.png", "h2")}
        )
        remote_files = [remote("a.png", "h9"), remote("c.png", "h3")]

        first = comparator.compare(scan, remote_files, "r")
        second = comparator.compare(scan, remote_files, "r")

        assert first == second

    def test_every_local_path_is_accounted_for(self, comparator):
        """Test that each managed path is kept, refreshed or deleted."""
        scan = ScanResult(
            entries={
                "keep.png": local("keep.png", "h1"),
                "change.png": local("change.png", "h2"),
                "drop.png": local("drop.png", "h3"),
            }
        )
        remote_files = [remote("keep.png", "h1"), remote("change.png", "h2x")]

        plan = comparator.compare(scan, remote_files, "r")

        downloaded = {i.path for i in plan.to_download}
        deleted = set(plan.to_delete)
        assert downloaded | deleted | {"keep.png"} == set(scan.entries)
        assert not downloaded & deleted

    def test_dash_prefixed_remote_file_matches_disk_name(self, comparator):
        """Test that a remote '-logo.png' is the local '-logo.png'."""
        scan = ScanResult(
            entries={
                "logo.png": local(
                    "-logo.png", "h", logical_path="logo.png", enabled=False
                )
            }
        )

        plan = comparator.compare(scan, [remote("-logo.png", "h")], "r")

        assert plan.is_up_to_date
        assert plan.up_to_date_count == 1

    def test_dash_prefixed_remote_file_refreshed_in_place(self, comparator):
        scan = ScanResult(
            entries={
                "logo.png": local(
                    "-logo.png", "old", logical_path="logo.png", enabled=False
                )
            }
        )

        plan = comparator.compare(scan, [remote("-logo.png", "new")], "r")

        assert [i.disk_path for i in plan.to_download] == ["-logo.png"]
        assert plan.to_delete == ()

    def test_dash_prefixed_and_plain_remote_files(self, comparator):
        """Test that 'logo.png' and '-logo.png' upstream are separate files."""
        scan = ScanResult(
            entries={
                "logo.png": local(
                    "-logo.png", "h1", logical_path="logo.png", enabled=False
                )
            }
        )
        remote_files = [remote("-logo.png", "h1"), remote("logo.png", "h2")]

        plan = comparator.compare(scan, remote_files, "r")

        assert [(i.disk_path, i.to_disabled) for i in plan.to_download] == [
            ("logo.png", False)
        ]
        assert plan.to_delete == ()
        assert plan.up_to_date_count == 1

    def test_disabled_dash_prefixed_file_stays_disabled(self, comparator):
        """Test that a user-disabled '-logo.png' lives on disk as '--logo.png'."""
        scan = ScanResult(
            entries={
                "-logo.png": local(
                    "--logo.png", "old", logical_path="-logo.png", enabled=False
                )
            }
        )

        plan = comparator.compare(scan, [remote("-logo.png", "new")], "r")

        assert [i.disk_path for i in plan.to_download] == ["--logo.png"]
        assert plan.to_delete == ()

    def test_written_paths_are_never_deleted(self, comparator):
        scan = ScanResult(
            entries={
                "a.png": local("-a.png", "h1", logical_path="a.png", enabled=False),
                "b.png": local("b.png", "h2"),
            },
            shadowed=[local("-b.png", "h2", logical_path="b.png", enabled=False)],
        )
        remote_files = [
            remote("-a.png", "x1"),
            remote("-b.png", "x2"),
            remote("c.png", "x3"),
        ]

        plan = comparator.compare(scan, remote_files, "r")

        written = {i.disk_path for i in plan.to_download}
        assert written == {"-a.png", "-b.png", "c.png"}
        assert plan.to_delete == ("b.png",)
        assert not written & set(plan.to_delete)

    def test_hidden_remote_files_are_ignored(self, comparator):
        """Test that dot files upstream are never planned for download."""
        remote_files = [
            remote("team/.gitkeep", "h0"),
            remote(".github/workflows/ci.yml", "h1"),
            remote("a.png", "h2"),
        ]

        plan = comparator.compare(ScanResult(), remote_files, "r")

        assert [i.path for i in plan.to_download] == ["a.png"]
