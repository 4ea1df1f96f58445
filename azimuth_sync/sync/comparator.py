"""File comparison logic for sync operations."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .scanner import LocalFile, RemoteFile


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DOWNLOAD = "download"
    """Download remote file to local"""

    SKIP = "skip"
    """Skip file (no action needed)"""

    CONFLICT = "conflict"
    """Both sides diverged; keep the remote bytes in a sidecar"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    local_file: Optional[LocalFile]
    """Local file (if exists)"""

    remote_file: Optional[RemoteFile]
    """Remote file (if exists)"""

    relative_path: str
    """Relative path of the file"""

    local_tag: Optional[str] = None
    """Local content expressed in the provider's tag format (if computed)"""


def _default_tag(local_file: LocalFile) -> str:
    return local_file.content_hash


class FileComparator:
    """Compares local and remote manifests to determine sync actions.

    A path present on both sides with different content is uploaded only
    when the local copy changed after the last recorded sync and the remote
    copy did not. Every other divergence is reported as a conflict so that
    neither side is overwritten silently. Without a recorded last sync time
    there is no common baseline, so every divergence is a conflict.
    """

    def __init__(
        self,
        last_sync: Optional[datetime] = None,
        tag_for: Optional[Callable[[LocalFile], str]] = None,
    ):
        """Initialize file comparator.

        Args:
            last_sync: Time of the last completed sync (UTC), if any
            tag_for: Function returning the provider's content tag for a
                local file. Defaults to the SHA-256 content hash.
        """
        self.last_sync = last_sync
        self.tag_for = tag_for or _default_tag

    def compare_files(
        self,
        local_files: dict[str, LocalFile],
        remote_files: dict[str, RemoteFile],
    ) -> list[SyncDecision]:
        """Compare local and remote files and determine sync actions.

        Args:
            local_files: Dictionary mapping relative_path to LocalFile
            remote_files: Dictionary mapping key to RemoteFile

        Returns:
            List of SyncDecision objects, sorted by path
        """
        decisions: list[SyncDecision] = []

        all_paths = set(local_files.keys()) | set(remote_files.keys())

        for path in sorted(all_paths):
            decision = self._compare_single_file(
                path, local_files.get(path), remote_files.get(path)
            )
            decisions.append(decision)

        return decisions

    def _compare_single_file(
        self,
        path: str,
        local_file: Optional[LocalFile],
        remote_file: Optional[RemoteFile],
    ) -> SyncDecision:
        if local_file and remote_file:
            return self._compare_existing_files(path, local_file, remote_file)

        if local_file:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="New local file",
                local_file=local_file,
                remote_file=None,
                relative_path=path,
            )

        if remote_file:
            return SyncDecision(
                action=SyncAction.DOWNLOAD,
                reason="New remote file",
                local_file=None,
                remote_file=remote_file,
                relative_path=path,
            )

        # Should never happen
        return SyncDecision(
            action=SyncAction.SKIP,
            reason="No file found",
            local_file=None,
            remote_file=None,
            relative_path=path,
        )

    def _compare_existing_files(
        self, path: str, local_file: LocalFile, remote_file: RemoteFile
    ) -> SyncDecision:
        local_tag = self.tag_for(local_file)

        if local_tag == remote_file.content_tag:
            return SyncDecision(
                action=SyncAction.SKIP,
                reason="Files are identical",
                local_file=local_file,
                remote_file=remote_file,
                relative_path=path,
                local_tag=local_tag,
            )

        if self.last_sync is None:
            return SyncDecision(
                action=SyncAction.CONFLICT,
                reason="Files differ and no previous sync is recorded",
                local_file=local_file,
                remote_file=remote_file,
                relative_path=path,
                local_tag=local_tag,
            )

        local_changed = local_file.modified_at > self.last_sync
        remote_changed = (
            remote_file.modified_at is not None
            and remote_file.modified_at > self.last_sync
        )

        if local_changed and not remote_changed:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="Local file changed since last sync",
                local_file=local_file,
                remote_file=remote_file,
                relative_path=path,
                local_tag=local_tag,
            )

        if local_changed:
            reason = "Both files changed since last sync"
        elif remote_changed:
            reason = "Remote file changed since last sync"
        else:
            reason = "Files differ but neither changed since last sync"

        return SyncDecision(
            action=SyncAction.CONFLICT,
            reason=reason,
            local_file=local_file,
            remote_file=remote_file,
            relative_path=path,
            local_tag=local_tag,
        )
