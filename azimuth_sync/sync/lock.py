"""Single-flight gate for sync runs.

A run holds the gate for its root and provider for its whole duration. The
gate is process-wide and non-blocking: a second run on the same key fails
immediately instead of queueing.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Union

from ..exceptions import AzimuthSyncInProgressError

logger = logging.getLogger(__name__)


class SyncLock:
    """Registry of in-flight (root, provider) pairs."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._active: set[tuple[str, str]] = set()

    @staticmethod
    def _key(root: Union[str, Path], provider: str) -> tuple[str, str]:
        return (str(Path(root).resolve()), provider)

    def is_held(self, root: Union[str, Path], provider: str) -> bool:
        with self._guard:
            return self._key(root, provider) in self._active

    @contextmanager
    def hold(self, root: Union[str, Path], provider: str) -> Iterator[None]:
        """Hold the gate for a root and provider.

        Raises:
            AzimuthSyncInProgressError: If another run holds the same key
        """
        key = self._key(root, provider)
        with self._guard:
            if key in self._active:
                raise AzimuthSyncInProgressError(
                    f"A {provider} sync of {key[0]} is already running"
                )
            self._active.add(key)
        logger.debug(f"Acquired sync gate for {key[0]} ({provider})")

        try:
            yield
        finally:
            with self._guard:
                self._active.discard(key)
            logger.debug(f"Released sync gate for {key[0]} ({provider})")


sync_lock = SyncLock()
