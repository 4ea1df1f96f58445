"""Shared fixtures for the Azimuth sync tests."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from azimuth_sync.exceptions import AzimuthNotFoundError
from azimuth_sync.output import OutputFormatter
from azimuth_sync.providers.base import RemoteProvider
from azimuth_sync.sync.scanner import RemoteFile
from azimuth_sync.utils import utc_now


class InMemoryProvider(RemoteProvider):
    """Provider keeping objects in a dict, tagged with their SHA-256."""

    name = "memory"
    display_name = "Memory"

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, Optional[datetime]]] = {}
        self.uploads: list[str] = []
        self.downloads: list[str] = []
        self.closed = False

    def put(self, key: str, data: bytes, modified_at: Optional[datetime] = None) -> None:
        """Seed an object without counting it as an upload."""
        self.objects[key] = (data, modified_at)

    def list(self) -> list[RemoteFile]:
        return [
            RemoteFile(
                key=key,
                content_tag=self.tag_for_bytes(data),
                modified_at=modified_at,
                size=len(data),
            )
            for key, (data, modified_at) in sorted(self.objects.items())
        ]

    def upload(self, relative_path: str, data: bytes) -> None:
        self.uploads.append(relative_path)
        self.objects[relative_path] = (data, utc_now())

    def download(self, key: str) -> bytes:
        self.downloads.append(key)
        if key not in self.objects:
            raise AzimuthNotFoundError(f"memory: no object {key}")
        return self.objects[key][0]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def provider():
    """Provide an empty in-memory provider."""
    return InMemoryProvider()


@pytest.fixture
def quiet_output():
    """Provide an output formatter that prints nothing but errors."""
    return OutputFormatter(quiet=True)


@pytest.fixture
def long_ago():
    """A last-sync time older than any file the tests create."""
    return datetime(2000, 1, 1, tzinfo=timezone.utc)
