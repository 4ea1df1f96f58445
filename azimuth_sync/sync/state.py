"""Persistence of the per-root sync configuration.

The configuration lives in ``.sync_config.json`` at the top of the sync root
and records which provider the root syncs with, whether sync is enabled, the
provider credentials and the time of the last completed sync.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from ..exceptions import AzimuthIOError
from ..utils import (
    SYNC_CONFIG_FILE_NAME,
    format_timestamp,
    parse_iso_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncConfig:
    """Provider selection and credentials for one sync root."""

    provider: str
    """Provider name: s3, dropbox, onedrive or googledrive"""

    enabled: bool = True
    """Whether sync runs are allowed for this root"""

    credentials: dict[str, Any] = field(default_factory=dict)
    """Provider credentials, stored as given"""

    last_sync: Optional[str] = None
    """ISO timestamp of last successful sync"""

    @property
    def last_sync_at(self) -> Optional[datetime]:
        """Parsed last_sync (UTC), or None if never synced."""
        return parse_iso_timestamp(self.last_sync)

    def to_dict(self) -> dict:
        """Convert config to dictionary for JSON serialization."""
        return {
            "provider": self.provider,
            "enabled": self.enabled,
            "credentials": self.credentials,
            "last_sync": self.last_sync,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncConfig":
        """Create SyncConfig from dictionary."""
        credentials = data.get("credentials") or {}
        if not isinstance(credentials, dict):
            raise ValueError("credentials must be an object")
        return cls(
            provider=str(data["provider"]),
            enabled=bool(data.get("enabled", True)),
            credentials=credentials,
            last_sync=data.get("last_sync"),
        )


class SyncConfigStore:
    """Reads and writes ``.sync_config.json`` beside a sync root.

    There is no merge logic: the last save wins.
    """

    def get_config_file(self, root: Union[str, Path]) -> Path:
        """Path of the configuration document for a sync root."""
        return Path(root) / SYNC_CONFIG_FILE_NAME

    def load(self, root: Union[str, Path]) -> Optional[SyncConfig]:
        """Load the sync configuration of a root.

        Args:
            root: Sync root directory

        Returns:
            SyncConfig if the document exists, None otherwise

        Raises:
            AzimuthIOError: If the document cannot be read or parsed
        """
        config_file = self.get_config_file(root)

        if not config_file.exists():
            logger.debug(f"No sync config found at {config_file}")
            return None

        try:
            with open(config_file, encoding="utf-8") as f:
                data = json.load(f)
            config = SyncConfig.from_dict(data)
        except OSError as e:
            raise AzimuthIOError(f"Cannot read {config_file}: {e}") from e
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise AzimuthIOError(f"Invalid sync config {config_file}: {e}") from e

        logger.debug(
            f"Loaded sync config for provider {config.provider} "
            f"(last sync: {config.last_sync})"
        )
        return config

    def save(self, root: Union[str, Path], config: SyncConfig) -> None:
        """Save the sync configuration of a root.

        Args:
            root: Sync root directory
            config: Configuration to store

        Raises:
            AzimuthIOError: If the document cannot be written
        """
        config_file = self.get_config_file(root)

        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(config_file, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2)
        except OSError as e:
            raise AzimuthIOError(f"Cannot write {config_file}: {e}") from e

        logger.debug(f"Saved sync config to {config_file}")

    def mark_synced(
        self,
        root: Union[str, Path],
        config: SyncConfig,
        when: Optional[datetime] = None,
    ) -> SyncConfig:
        """Record a completed sync and persist the configuration.

        Args:
            root: Sync root directory
            config: Configuration used for the run (updated in place)
            when: Completion time, defaults to now

        Returns:
            The updated configuration
        """
        config.last_sync = format_timestamp(when or utc_now())
        self.save(root, config)
        return config
