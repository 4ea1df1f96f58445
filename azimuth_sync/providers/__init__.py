"""Cloud providers the sync engine can reconcile against."""

from typing import Any

from ..exceptions import AzimuthInvalidArgumentError
from .base import RemoteProvider
from .dropbox import DropboxProvider
from .gdrive import GoogleDriveProvider
from .onedrive import OneDriveProvider
from .s3 import S3Provider

PROVIDER_NAMES = (
    S3Provider.name,
    DropboxProvider.name,
    OneDriveProvider.name,
    GoogleDriveProvider.name,
)


def _require(credentials: dict[str, Any], key: str, provider: str) -> str:
    value = credentials.get(key)
    if not value:
        raise AzimuthInvalidArgumentError(
            f"{provider} credentials are missing {key!r}"
        )
    return str(value)


def create_provider(name: str, credentials: dict[str, Any]) -> RemoteProvider:
    """Build a provider from a stored sync configuration.

    Credential keys follow the application's settings form: ``bucket``,
    ``region``, ``accessKey``, ``secretKey`` and optional ``endpointUrl`` for
    S3; ``accessToken`` for Dropbox, OneDrive and Google Drive.

    Args:
        name: Provider name (s3, dropbox, onedrive, googledrive)
        credentials: Credentials blob

    Returns:
        A provider instance

    Raises:
        AzimuthInvalidArgumentError: Unknown provider or missing credentials

    Examples:
        >>> provider = create_provider("dropbox", {"accessToken": "sl.abc"})
        >>> provider.name
        'dropbox'
    """
    if name == S3Provider.name:
        return S3Provider(
            bucket=_require(credentials, "bucket", name),
            region=credentials.get("region"),
            access_key=_require(credentials, "accessKey", name),
            secret_key=_require(credentials, "secretKey", name),
            endpoint_url=credentials.get("endpointUrl"),
        )
    if name == DropboxProvider.name:
        return DropboxProvider(_require(credentials, "accessToken", name))
    if name == OneDriveProvider.name:
        return OneDriveProvider(_require(credentials, "accessToken", name))
    if name == GoogleDriveProvider.name:
        return GoogleDriveProvider(_require(credentials, "accessToken", name))
    raise AzimuthInvalidArgumentError(f"Unknown provider: {name!r}")


__all__ = [
    "RemoteProvider",
    "S3Provider",
    "DropboxProvider",
    "OneDriveProvider",
    "GoogleDriveProvider",
    "PROVIDER_NAMES",
    "create_provider",
]
