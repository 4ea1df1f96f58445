"""Directory scanning utilities for sync operations."""

import fnmatch
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..exceptions import AzimuthIOError
from ..hashing import hash_file
from ..utils import CONFLICT_SUFFIX, timestamp_to_datetime, utc_now

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    content_hash: str
    """SHA-256 hex digest of the file contents"""

    modified_at: datetime
    """Last modification time (UTC)"""

    size: int = 0
    """File size in bytes"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance

        Raises:
            OSError: If the file contents cannot be read
        """
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()
        content_hash = hash_file(file_path)

        # A missing timestamp never drops the file from the manifest
        try:
            stat = file_path.stat()
            modified_at = timestamp_to_datetime(stat.st_mtime)
            size = stat.st_size
        except (OSError, OverflowError, ValueError):
            modified_at = utc_now()
            size = 0

        return cls(
            path=file_path,
            relative_path=relative_path,
            content_hash=content_hash,
            modified_at=modified_at,
            size=size,
        )


@dataclass
class RemoteFile:
    """Represents a remote object with metadata."""

    key: str
    """Relative path of the object (forward slashes, no provider prefix)"""

    content_tag: str
    """Provider-supplied content token, compared for equality only"""

    modified_at: Optional[datetime] = None
    """Last modification time reported by the provider (UTC), if any"""

    size: Optional[int] = None
    """Object size in bytes, if reported"""

    remote_id: Optional[str] = None
    """Provider-specific identifier (Drive file id, OneDrive item id)"""

    @property
    def relative_path(self) -> str:
        """Alias for key, so local and remote records share a lookup name."""
        return self.key


def is_conflict_sidecar(name: str) -> bool:
    """Check if a file name is a conflict sidecar."""
    return name.endswith(CONFLICT_SUFFIX)


def is_hidden_name(name: str) -> bool:
    return name.startswith(".")


def is_untracked_key(key: str) -> bool:
    """Check if a relative path names sync metadata rather than a note.

    Hidden paths (any component starting with ``.``) and conflict sidecars
    are never synced in either direction.

    Examples:
        >>> is_untracked_key(".sync_config.json")
        True
        >>> is_untracked_key("notes/.git/HEAD")
        True
        >>> is_untracked_key("notes/a.conflict")
        True
        >>> is_untracked_key("notes/a.md")
        False
    """
    parts = key.split("/")
    return any(is_hidden_name(part) for part in parts) or is_conflict_sidecar(
        parts[-1]
    )


class DirectoryScanner:
    """Scans a sync root and builds the local manifest.

    Hidden entries (any path component starting with ``.``) and conflict
    sidecars are never part of the manifest.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/home/user/Azimuth"))

        >>> # With extra patterns
        >>> scanner = DirectoryScanner(ignore_patterns=["*.tmp", "cache/*"])
    """

    def __init__(self, ignore_patterns: Optional[list[str]] = None):
        """Initialize directory scanner.

        Args:
            ignore_patterns: Glob patterns matched against relative paths
                (e.g., ["*.log", "temp/*"])
        """
        self.ignore_patterns = ignore_patterns or []

    def should_ignore(self, path: Path, base_path: Path) -> bool:
        """Check if a path should be left out of the manifest.

        Args:
            path: Path to check
            base_path: Sync root

        Returns:
            True if path should be ignored
        """
        if is_hidden_name(path.name):
            return True

        if path.is_file() and is_conflict_sidecar(path.name):
            return True

        if self.ignore_patterns:
            relative_path = path.relative_to(base_path).as_posix()
            for pattern in self.ignore_patterns:
                if fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(
                    path.name, pattern
                ):
                    logger.debug(f"Ignoring (pattern {pattern}): {relative_path}")
                    return True

        return False

    def scan_local(self, directory: Union[str, Path]) -> list[LocalFile]:
        """Recursively scan a sync root.

        The root is created if it does not exist yet.

        Args:
            directory: Sync root to scan

        Returns:
            List of LocalFile objects sorted by relative path

        Raises:
            AzimuthIOError: If the root cannot be created or read
        """
        root = Path(directory)
        try:
            root.mkdir(parents=True, exist_ok=True)
            entries = list(root.iterdir())
        except OSError as e:
            raise AzimuthIOError(f"Cannot read sync root {root}: {e}") from e

        files = self._scan_entries(entries, root)
        files.sort(key=lambda f: f.relative_path)
        logger.debug(f"Scanned {len(files)} local file(s) under {root}")
        return files

    def _scan_entries(self, entries: list[Path], base_path: Path) -> list[LocalFile]:
        files: list[LocalFile] = []

        for item in entries:
            if self.should_ignore(item, base_path):
                continue

            if item.is_symlink() and item.is_dir():
                # Symlinked directories can form cycles
                logger.debug(f"Skipping symlinked directory: {item}")
                continue

            if item.is_file():
                try:
                    files.append(LocalFile.from_path(item, base_path))
                except OSError as e:
                    logger.warning(f"Skipping unreadable file {item}: {e}")
            elif item.is_dir():
                try:
                    children = list(item.iterdir())
                except OSError as e:
                    logger.warning(f"Skipping unreadable directory {item}: {e}")
                    continue
                files.extend(self._scan_entries(children, base_path))

        return files
