"""Conflict sidecar files and their resolution.

A conflicted note ``notes/a.md`` keeps the local bytes in place while the
remote bytes wait in ``notes/a.conflict``. Resolving the conflict either
drops the sidecar (keep local), moves it over the note (keep remote), or
renames it to ``notes/a_conflict.md`` so both versions survive (keep both).
"""

import glob
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from ..exceptions import AzimuthInvalidArgumentError, AzimuthIOError
from ..utils import CONFLICT_COPY_INFIX, CONFLICT_SUFFIX, resolve_within_root
from .scanner import is_conflict_sidecar

logger = logging.getLogger(__name__)


class Resolution(str, Enum):
    """How a conflict is resolved."""

    KEEP_LOCAL = "keep_local"
    KEEP_REMOTE = "keep_remote"
    KEEP_BOTH = "keep_both"


@dataclass
class ConflictResolution:
    """A user's decision for one conflicted file."""

    file_path: str
    """Relative path of the conflicted note"""

    resolution: str
    """One of keep_local, keep_remote, keep_both"""


def sidecar_path(file_path: Path) -> Path:
    """Sidecar holding the remote version of a file (extension replaced)."""
    return file_path.with_suffix(CONFLICT_SUFFIX)


def conflict_copy_path(file_path: Path) -> Path:
    """Name given to the remote version when both versions are kept.

    Examples:
        >>> conflict_copy_path(Path("notes/a.md")).as_posix()
        'notes/a_conflict.md'
        >>> conflict_copy_path(Path("notes/README")).as_posix()
        'notes/README_conflict'
    """
    return file_path.with_name(f"{file_path.stem}{CONFLICT_COPY_INFIX}{file_path.suffix}")


class ConflictStore:
    """Persists pending conflicts as sidecars and applies resolutions."""

    def _resolve_path(self, root: Union[str, Path], relative_path: str) -> Path:
        local_path = resolve_within_root(root, relative_path)
        if local_path is None:
            raise AzimuthInvalidArgumentError(
                f"Path is not inside the sync root: {relative_path!r}"
            )
        return local_path

    def write_sidecar(
        self, root: Union[str, Path], relative_path: str, data: bytes
    ) -> Path:
        """Store the remote bytes of a conflicted file.

        Args:
            root: Sync root directory
            relative_path: Relative path of the conflicted note
            data: Remote contents

        Returns:
            Path of the sidecar file

        Raises:
            AzimuthInvalidArgumentError: If the path escapes the root
            AzimuthIOError: If the sidecar cannot be written
        """
        path = sidecar_path(self._resolve_path(root, relative_path))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise AzimuthIOError(f"Cannot write conflict file {path}: {e}") from e
        logger.debug(f"Stored remote version of {relative_path} in {path}")
        return path

    def pending(self, root: Union[str, Path]) -> list[str]:
        """List relative paths of notes with an unresolved sidecar.

        The sidecar name does not record the original extension, so the note
        is located by looking for a sibling with the same stem. When none
        exists the sidecar's own path is reported.

        Args:
            root: Sync root directory

        Returns:
            Sorted relative paths (forward slashes)
        """
        root_path = Path(root)
        if not root_path.is_dir():
            return []

        results: set[str] = set()
        for sidecar in root_path.rglob(f"*{CONFLICT_SUFFIX}"):
            relative = sidecar.relative_to(root_path)
            if not sidecar.is_file() or any(
                part.startswith(".") for part in relative.parts
            ):
                continue
            siblings = [
                p
                for p in sidecar.parent.glob(f"{glob.escape(sidecar.stem)}.*")
                if p != sidecar and p.is_file()
            ]
            target = siblings[0] if siblings else sidecar
            results.add(target.relative_to(root_path).as_posix())
        return sorted(results)

    def resolve(self, root: Union[str, Path], resolution: ConflictResolution) -> None:
        """Apply a user's resolution to a conflicted file.

        Resolving a path that has no sidecar (for example because it was
        already resolved) does nothing.

        Args:
            root: Sync root directory
            resolution: File path and resolution kind

        Raises:
            AzimuthInvalidArgumentError: Unknown resolution kind, bad path, or
                a path naming the sidecar itself
            AzimuthIOError: If the filesystem operation fails
        """
        try:
            kind = Resolution(resolution.resolution)
        except ValueError:
            raise AzimuthInvalidArgumentError(
                f"Invalid resolution type: {resolution.resolution!r}"
            ) from None

        file_path = self._resolve_path(root, resolution.file_path)
        if is_conflict_sidecar(file_path.name):
            raise AzimuthInvalidArgumentError(
                f"Not a conflicted note (sidecar given): {resolution.file_path!r}"
            )
        conflict_path = sidecar_path(file_path)

        if not conflict_path.exists():
            logger.info(f"No pending conflict for {resolution.file_path}")
            return

        try:
            if kind is Resolution.KEEP_REMOTE:
                os.replace(conflict_path, file_path)
            else:
                if kind is Resolution.KEEP_LOCAL:
                    conflict_path.unlink()
                else:
                    os.replace(conflict_path, conflict_copy_path(file_path))
                # Kept local version uploads on the next run
                if file_path.exists():
                    os.utime(file_path)
        except OSError as e:
            raise AzimuthIOError(
                f"Failed to resolve conflict for {resolution.file_path}: {e}"
            ) from e

        logger.debug(f"Resolved {resolution.file_path} with {kind.value}")
