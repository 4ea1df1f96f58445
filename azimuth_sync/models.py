"""Result types returned to callers of a sync run."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .utils import format_timestamp


@dataclass
class SyncConflict:
    """A path whose local and remote versions diverged."""

    file_path: str
    """Relative path of the conflicted note"""

    local_modified: datetime
    """Local modification time"""

    remote_modified: Optional[datetime]
    """Remote modification time, if the provider reports one"""

    local_hash: str
    """SHA-256 of the local contents"""

    remote_hash: str
    """SHA-256 of the remote contents (stored in the sidecar)"""

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "local_modified": format_timestamp(self.local_modified),
            "remote_modified": format_timestamp(self.remote_modified),
            "local_hash": self.local_hash,
            "remote_hash": self.remote_hash,
        }


@dataclass
class SyncOutcome:
    """Summary of one sync run. Not persisted."""

    success: bool
    message: str
    files_uploaded: int = 0
    files_downloaded: int = 0
    conflicts: list[SyncConflict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "files_uploaded": self.files_uploaded,
            "files_downloaded": self.files_downloaded,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }
