"""Common interface implemented by every cloud provider."""

from abc import ABC, abstractmethod
from typing import Any

from ..hashing import content_hash
from ..sync.scanner import LocalFile, RemoteFile


class RemoteProvider(ABC):
    """Remote object store the sync engine reconciles against.

    Keys are relative paths with forward slashes; each provider maps them to
    its own remote location.
    """

    name: str = ""
    """Provider name as stored in the sync configuration"""

    display_name: str = ""
    """Human-readable provider name"""

    @abstractmethod
    def list(self) -> list[RemoteFile]:
        """List every object under the provider's sync location.

        Raises:
            AzimuthRemoteError: On authentication, network or API failure
        """

    @abstractmethod
    def upload(self, relative_path: str, data: bytes) -> None:
        """Store bytes under a key, replacing any existing object.

        Raises:
            AzimuthRemoteError: If the upload fails
        """

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Fetch the bytes of an object.

        Raises:
            AzimuthRemoteError: If the download fails
        """

    def tag_for(self, local_file: LocalFile) -> str:
        """Content tag this provider would report for a local file.

        Providers without a native content tag store the SHA-256 fingerprint,
        so the default is the hash already computed by the scanner.
        """
        return local_file.content_hash

    def tag_for_bytes(self, data: bytes) -> str:
        """Content tag this provider would report for the given bytes."""
        return content_hash(data)

    def close(self) -> None:
        """Release network resources."""

    def __enter__(self) -> "RemoteProvider":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
