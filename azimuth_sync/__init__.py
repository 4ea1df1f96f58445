"""Azimuth Sync - keep a notes directory in sync with cloud storage."""

from .commands import (
    load_sync_config,
    resolve_conflict,
    save_sync_config,
    sync_to_dropbox,
    sync_to_google_drive,
    sync_to_onedrive,
    sync_to_s3,
    sync_with_config,
)
from .exceptions import (
    AzimuthAuthenticationError,
    AzimuthConfigError,
    AzimuthError,
    AzimuthInvalidArgumentError,
    AzimuthInvalidResponseError,
    AzimuthIOError,
    AzimuthNetworkError,
    AzimuthNotFoundError,
    AzimuthPermissionError,
    AzimuthRateLimitError,
    AzimuthRemoteError,
    AzimuthSyncInProgressError,
)
from .hashing import content_hash, hash_file
from .models import SyncConflict, SyncOutcome
from .sync.conflicts import ConflictResolution
from .sync.state import SyncConfig

__all__ = [
    "sync_to_s3",
    "sync_to_dropbox",
    "sync_to_onedrive",
    "sync_to_google_drive",
    "sync_with_config",
    "resolve_conflict",
    "save_sync_config",
    "load_sync_config",
    "SyncConfig",
    "SyncConflict",
    "SyncOutcome",
    "ConflictResolution",
    "content_hash",
    "hash_file",
    "AzimuthError",
    "AzimuthIOError",
    "AzimuthRemoteError",
    "AzimuthAuthenticationError",
    "AzimuthPermissionError",
    "AzimuthNotFoundError",
    "AzimuthRateLimitError",
    "AzimuthNetworkError",
    "AzimuthInvalidResponseError",
    "AzimuthInvalidArgumentError",
    "AzimuthConfigError",
    "AzimuthSyncInProgressError",
]
