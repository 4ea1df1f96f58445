"""Application configuration for Azimuth sync.

The notes directory (the default sync root) is resolved from, in order:

1. the ``AZIMUTH_NOTES_DIR`` environment variable,
2. the ``notes_dir`` key of ``~/.config/azimuth/config.json``,
3. ``~/Azimuth``.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import AzimuthIOError

logger = logging.getLogger(__name__)

APP_FOLDER_NAME = "Azimuth"
NOTES_DIR_ENV_VAR = "AZIMUTH_NOTES_DIR"
CONFIG_DIR_ENV_VAR = "AZIMUTH_CONFIG_DIR"


class Config:
    """Reads and writes the application-level configuration file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding ``config.json``. Defaults to
                ``$AZIMUTH_CONFIG_DIR`` or ``~/.config/azimuth``.
        """
        if config_dir is None:
            env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
            if env_dir:
                config_dir = Path(env_dir)
            else:
                config_dir = Path.home() / ".config" / "azimuth"
        self.config_dir = config_dir
        self.config_file = self.config_dir / "config.json"

    def _read(self) -> dict[str, Any]:
        if not self.config_file.exists():
            return {}
        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise AzimuthIOError(
                f"Failed to write config file {self.config_file}: {e}"
            ) from e

    @property
    def notes_dir(self) -> Path:
        """Directory holding the notes, created on first access."""
        env_value = os.environ.get(NOTES_DIR_ENV_VAR)
        if env_value:
            notes_dir = Path(env_value).expanduser()
        else:
            stored = self._read().get("notes_dir")
            if stored:
                notes_dir = Path(stored).expanduser()
            else:
                notes_dir = Path.home() / APP_FOLDER_NAME

        if not notes_dir.exists():
            try:
                notes_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AzimuthIOError(
                    f"Cannot create notes directory {notes_dir}: {e}"
                ) from e
        return notes_dir

    def set_notes_dir(self, path: Path) -> None:
        """Persist a new notes directory.

        Args:
            path: Directory to use as the default sync root

        Raises:
            AzimuthIOError: If the directory or the config file cannot be written
        """
        path = Path(path).expanduser()
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AzimuthIOError(f"Cannot create notes directory {path}: {e}") from e

        data = self._read()
        data["notes_dir"] = str(path.resolve())
        self._write(data)
        logger.debug(f"Notes directory set to {data['notes_dir']}")


config = Config()
