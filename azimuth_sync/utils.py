"""Utility functions for Azimuth sync."""

from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Optional, Union

# =============================================================================
# Constants for the sync root layout
# =============================================================================

# Remote folder holding the notes on Dropbox, OneDrive and Google Drive
REMOTE_ROOT_FOLDER: str = "Azimuth"

# Per-root sync configuration document
SYNC_CONFIG_FILE_NAME: str = ".sync_config.json"

# Suffix of sidecar files holding the remote side of a conflict
CONFLICT_SUFFIX: str = ".conflict"

# Infix used by "keep both" to name the remote copy
CONFLICT_COPY_INFIX: str = "_conflict"


# =============================================================================
# Timestamp utilities
# =============================================================================


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert a Unix timestamp to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp as returned by the cloud APIs.

    Args:
        timestamp_str: ISO timestamp (e.g., "2025-01-15T10:30:00.000Z")

    Returns:
        Timezone-aware UTC datetime, or None if the value is missing or invalid.
        Naive timestamps are assumed to be UTC.

    Examples:
        >>> parse_iso_timestamp("2025-01-15T10:30:00Z").isoformat()
        '2025-01-15T10:30:00+00:00'
        >>> parse_iso_timestamp("not a date") is None
        True
    """
    if not timestamp_str:
        return None

    value = timestamp_str.strip()
    # The 'Z' suffix indicates UTC time
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        # Older interpreters reject fractional seconds that are not 3 or 6 digits
        if "." not in value:
            return None
        head, _, tail = value.partition(".")
        offset = ""
        for sign in ("+", "-"):
            if sign in tail:
                offset = sign + tail.split(sign, 1)[1]
                break
        try:
            dt = datetime.fromisoformat(head + offset)
        except ValueError:
            return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as an ISO 8601 string (None passes through)."""
    if dt is None:
        return None
    return dt.isoformat()


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Path utilities
# =============================================================================


def resolve_within_root(root: Union[str, Path], relative_path: str) -> Optional[Path]:
    """Resolve a forward-slash relative path inside a sync root.

    Args:
        root: Sync root directory
        relative_path: Relative path as stored in manifests and remote keys

    Returns:
        Absolute local path, or None if the path is absolute, empty, or
        would escape the root

    Examples:
        >>> resolve_within_root("/notes", "../etc/passwd") is None
        True
    """
    if not relative_path:
        return None
    posix = PurePosixPath(relative_path.replace("\\", "/"))
    if posix.is_absolute() or ".." in posix.parts:
        return None

    root_path = Path(root).resolve()
    candidate = (root_path / Path(*posix.parts)).resolve()
    try:
        candidate.relative_to(root_path)
    except ValueError:
        return None
    if candidate == root_path:
        return None
    return candidate
