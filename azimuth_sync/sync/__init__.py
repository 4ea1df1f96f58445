"""Sync engine for Azimuth - scan, compare, transfer and resolve conflicts."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .conflicts import ConflictResolution, ConflictStore, Resolution
from .engine import SyncEngine
from .lock import SyncLock, sync_lock
from .scanner import DirectoryScanner, LocalFile, RemoteFile
from .state import SyncConfig, SyncConfigStore

__all__ = [
    "SyncEngine",
    "DirectoryScanner",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "LocalFile",
    "RemoteFile",
    "ConflictResolution",
    "ConflictStore",
    "Resolution",
    "SyncConfig",
    "SyncConfigStore",
    "SyncLock",
    "sync_lock",
]
