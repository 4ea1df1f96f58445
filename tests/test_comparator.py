"""Tests for the FileComparator class."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from azimuth_sync.sync.comparator import FileComparator, SyncAction
from azimuth_sync.sync.scanner import LocalFile, RemoteFile

LAST_SYNC = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
BEFORE = LAST_SYNC - timedelta(hours=1)
AFTER = LAST_SYNC + timedelta(hours=1)


def _local(
    relative_path: str = "note.md", tag: str = "local", modified_at: datetime = AFTER
) -> LocalFile:
    """Create a LocalFile for testing."""
    return LocalFile(
        path=Path(f"/notes/{relative_path}"),
        relative_path=relative_path,
        content_hash=tag,
        modified_at=modified_at,
        size=10,
    )


def _remote(
    key: str = "note.md", tag: str = "remote", modified_at: Optional[datetime] = BEFORE
) -> RemoteFile:
    """Create a RemoteFile for testing."""
    return RemoteFile(key=key, content_tag=tag, modified_at=modified_at)


class TestSingleSided:
    """Tests for paths present on one side only."""

    def test_local_only_uploads(self):
        comparator = FileComparator(last_sync=LAST_SYNC)

        decisions = comparator.compare_files({"note.md": _local()}, {})

        assert len(decisions) == 1
        assert decisions[0].action == SyncAction.UPLOAD
        assert decisions[0].reason == "New local file"
        assert decisions[0].remote_file is None

    def test_remote_only_downloads(self):
        comparator = FileComparator()

        decisions = comparator.compare_files({}, {"note.md": _remote()})

        assert decisions[0].action == SyncAction.DOWNLOAD
        assert decisions[0].reason == "New remote file"
        assert decisions[0].local_file is None


class TestBothSides:
    """Tests for paths present locally and remotely."""

    def test_equal_tags_skip(self):
        """Identical content is skipped regardless of timestamps."""
        comparator = FileComparator()

        decisions = comparator.compare_files(
            {"note.md": _local(tag="same")}, {"note.md": _remote(tag="same")}
        )

        assert decisions[0].action == SyncAction.SKIP
        assert decisions[0].reason == "Files are identical"

    def test_no_last_sync_is_conflict(self):
        """Without a recorded sync every divergence is a conflict."""
        comparator = FileComparator(last_sync=None)

        decisions = comparator.compare_files(
            {"note.md": _local()}, {"note.md": _remote()}
        )

        assert decisions[0].action == SyncAction.CONFLICT
        assert "no previous sync" in decisions[0].reason

    def test_local_changed_uploads(self):
        """Only the local side changed since the last sync."""
        comparator = FileComparator(last_sync=LAST_SYNC)

        decisions = comparator.compare_files(
            {"note.md": _local(modified_at=AFTER)},
            {"note.md": _remote(modified_at=BEFORE)},
        )

        assert decisions[0].action == SyncAction.UPLOAD
        assert decisions[0].reason == "Local file changed since last sync"

    def test_local_changed_remote_without_time_uploads(self):
        """A remote without a modification time does not count as changed."""
        comparator = FileComparator(last_sync=LAST_SYNC)

        decisions = comparator.compare_files(
            {"note.md": _local(modified_at=AFTER)},
            {"note.md": _remote(modified_at=None)},
        )

        assert decisions[0].action == SyncAction.UPLOAD

    def test_both_changed_is_conflict(self):
        comparator = FileComparator(last_sync=LAST_SYNC)

        decisions = comparator.compare_files(
            {"note.md": _local(modified_at=AFTER)},
            {"note.md": _remote(modified_at=AFTER)},
        )

        assert decisions[0].action == SyncAction.CONFLICT
        assert decisions[0].reason == "Both files changed since last sync"

    def test_remote_changed_is_conflict(self):
        """A newer remote is never downloaded over a divergent local file."""
        comparator = FileComparator(last_sync=LAST_SYNC)

        decisions = comparator.compare_files(
            {"note.md": _local(modified_at=BEFORE)},
            {"note.md": _remote(modified_at=AFTER)},
        )

        assert decisions[0].action == SyncAction.CONFLICT
        assert decisions[0].reason == "Remote file changed since last sync"

    def test_equal_to_last_sync_is_not_newer(self):
        """The comparison with the last sync time is strict."""
        comparator = FileComparator(last_sync=LAST_SYNC)

        decisions = comparator.compare_files(
            {"note.md": _local(modified_at=LAST_SYNC)},
            {"note.md": _remote(modified_at=BEFORE)},
        )

        assert decisions[0].action == SyncAction.CONFLICT
        assert decisions[0].reason == "Files differ but neither changed since last sync"

    def test_custom_tag_function(self):
        """The provider's tag function decides whether content matches."""
        comparator = FileComparator(tag_for=lambda local_file: "provider-tag")

        decisions = comparator.compare_files(
            {"note.md": _local(tag="sha")},
            {"note.md": _remote(tag="provider-tag")},
        )

        assert decisions[0].action == SyncAction.SKIP
        assert decisions[0].local_tag == "provider-tag"


class TestCompareFiles:
    """Tests for whole-manifest comparison."""

    def test_decisions_sorted_by_path(self):
        comparator = FileComparator()
        local_files = {"b.md": _local("b.md"), "a/z.md": _local("a/z.md")}
        remote_files = {"c.md": _remote("c.md")}

        decisions = comparator.compare_files(local_files, remote_files)

        assert [d.relative_path for d in decisions] == ["a/z.md", "b.md", "c.md"]

    def test_empty_manifests(self):
        assert FileComparator().compare_files({}, {}) == []
