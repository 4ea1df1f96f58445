"""Entry points the application calls to sync a notes directory.

Each ``sync_to_*`` function builds the provider from explicit credentials,
runs one sync of ``base_path`` and returns a :class:`SyncOutcome`. Failures
propagate as :class:`~azimuth_sync.exceptions.AzimuthError` subclasses.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .exceptions import AzimuthConfigError, AzimuthInvalidArgumentError
from .models import SyncOutcome
from .output import OutputFormatter
from .providers import (
    DropboxProvider,
    GoogleDriveProvider,
    OneDriveProvider,
    RemoteProvider,
    S3Provider,
    create_provider,
)
from .sync.conflicts import ConflictResolution, ConflictStore
from .sync.engine import SyncEngine
from .sync.state import SyncConfig, SyncConfigStore
from .utils import parse_iso_timestamp, utc_now

logger = logging.getLogger(__name__)

LastSync = Optional[Union[str, datetime]]


def _coerce_last_sync(last_sync: LastSync) -> Optional[datetime]:
    if last_sync is None or isinstance(last_sync, datetime):
        return last_sync
    parsed = parse_iso_timestamp(last_sync)
    if parsed is None:
        raise AzimuthInvalidArgumentError(f"Invalid last sync time: {last_sync!r}")
    return parsed


def run_sync(
    provider: RemoteProvider,
    base_path: Union[str, Path],
    last_sync: LastSync = None,
    output: Optional[OutputFormatter] = None,
    max_workers: int = 1,
    dry_run: bool = False,
) -> SyncOutcome:
    """Run one sync of a notes directory with an already built provider.

    The provider is closed when the run ends.
    """
    with provider:
        engine = SyncEngine(provider, output=output)
        outcome = engine.sync_root(
            base_path,
            last_sync=_coerce_last_sync(last_sync),
            max_workers=max_workers,
            dry_run=dry_run,
        )
    logger.info(outcome.message)
    return outcome


def sync_to_s3(
    base_path: Union[str, Path],
    bucket: str,
    region: Optional[str],
    access_key: str,
    secret_key: str,
    endpoint_url: Optional[str] = None,
    last_sync: LastSync = None,
    output: Optional[OutputFormatter] = None,
    max_workers: int = 1,
) -> SyncOutcome:
    """Sync a notes directory with an S3 bucket.

    Args:
        base_path: Sync root
        bucket: Bucket name
        region: AWS region
        access_key: Access key id
        secret_key: Secret access key
        endpoint_url: Custom endpoint for S3-compatible services
        last_sync: Time of the last completed sync (ISO string or datetime)
        output: Output formatter for progress (silent by default)
        max_workers: Number of parallel transfers

    Returns:
        Outcome of the run
    """
    provider = S3Provider(
        bucket=bucket,
        region=region,
        access_key=access_key,
        secret_key=secret_key,
        endpoint_url=endpoint_url,
    )
    return run_sync(provider, base_path, last_sync, output, max_workers)


def sync_to_dropbox(
    base_path: Union[str, Path],
    access_token: str,
    last_sync: LastSync = None,
    output: Optional[OutputFormatter] = None,
    max_workers: int = 1,
) -> SyncOutcome:
    """Sync a notes directory with the ``/Azimuth`` folder in Dropbox."""
    return run_sync(
        DropboxProvider(access_token), base_path, last_sync, output, max_workers
    )


def sync_to_onedrive(
    base_path: Union[str, Path],
    access_token: str,
    last_sync: LastSync = None,
    output: Optional[OutputFormatter] = None,
    max_workers: int = 1,
) -> SyncOutcome:
    """Sync a notes directory with the ``/Azimuth`` folder in OneDrive."""
    return run_sync(
        OneDriveProvider(access_token), base_path, last_sync, output, max_workers
    )


def sync_to_google_drive(
    base_path: Union[str, Path],
    access_token: str,
    last_sync: LastSync = None,
    output: Optional[OutputFormatter] = None,
    max_workers: int = 1,
) -> SyncOutcome:
    """Sync a notes directory with the ``Azimuth`` folder in Google Drive."""
    return run_sync(
        GoogleDriveProvider(access_token), base_path, last_sync, output, max_workers
    )


def sync_with_config(
    base_path: Union[str, Path],
    output: Optional[OutputFormatter] = None,
    max_workers: int = 1,
    dry_run: bool = False,
) -> SyncOutcome:
    """Sync a notes directory using its saved ``.sync_config.json``.

    On success the time the run started is stored as the new ``last_sync``.

    Args:
        base_path: Sync root holding the configuration
        output: Output formatter for progress (silent by default)
        max_workers: Number of parallel transfers
        dry_run: If True, only report what would be done

    Returns:
        Outcome of the run

    Raises:
        AzimuthConfigError: If sync is not configured, disabled or invalid
    """
    store = SyncConfigStore()
    sync_config = store.load(base_path)
    if sync_config is None:
        raise AzimuthConfigError(f"Sync is not configured for {base_path}")
    if not sync_config.enabled:
        raise AzimuthConfigError(f"Sync is disabled for {base_path}")

    try:
        provider = create_provider(sync_config.provider, sync_config.credentials)
    except AzimuthInvalidArgumentError as e:
        raise AzimuthConfigError(f"Invalid sync configuration: {e}") from e

    started_at = utc_now()
    outcome = run_sync(
        provider, base_path, sync_config.last_sync, output, max_workers, dry_run
    )
    if not dry_run:
        # Edits made while the run was in progress count as newer
        store.mark_synced(base_path, sync_config, when=started_at)
    return outcome


def resolve_conflict(
    base_path: Union[str, Path], resolution: ConflictResolution
) -> None:
    """Apply a conflict resolution (keep_local, keep_remote or keep_both)."""
    ConflictStore().resolve(base_path, resolution)


def list_conflicts(base_path: Union[str, Path]) -> list[str]:
    """Relative paths of notes with an unresolved conflict."""
    return ConflictStore().pending(base_path)


def save_sync_config(base_path: Union[str, Path], sync_config: SyncConfig) -> None:
    """Store the sync configuration of a notes directory."""
    SyncConfigStore().save(base_path, sync_config)


def load_sync_config(base_path: Union[str, Path]) -> Optional[SyncConfig]:
    """Load the sync configuration of a notes directory, if any."""
    return SyncConfigStore().load(base_path)
