"""S3-compatible provider (AWS S3, MinIO, Backblaze B2, ...)."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from ..exceptions import (
    AzimuthAuthenticationError,
    AzimuthInvalidArgumentError,
    AzimuthNetworkError,
    AzimuthNotFoundError,
    AzimuthPermissionError,
    AzimuthRateLimitError,
    AzimuthRemoteError,
)
from ..hashing import md5_hex
from ..sync.scanner import LocalFile, RemoteFile
from .base import RemoteProvider

logger = logging.getLogger(__name__)

AUTH_ERROR_CODES = {
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
    "TokenRefreshRequired",
}
NOT_FOUND_ERROR_CODES = {"NoSuchKey", "NoSuchBucket", "404", "NotFound"}
THROTTLE_ERROR_CODES = {"SlowDown", "Throttling", "ThrottlingException", "503"}


class S3Provider(RemoteProvider):
    """Syncs with an S3 bucket.

    The object key is the relative path itself and the content tag is the
    ETag S3 assigns, which for single-request uploads is the MD5 of the body.
    """

    name = "s3"
    display_name = "S3"

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        endpoint_url: str | None = None,
        client: Any = None,
    ):
        """Initialize the provider.

        Args:
            bucket: Bucket name
            region: AWS region (e.g., "eu-central-1")
            access_key: Access key id
            secret_key: Secret access key
            endpoint_url: Custom endpoint for S3-compatible services
            client: Pre-built boto3 S3 client (used by tests)
        """
        if not bucket:
            raise AzimuthInvalidArgumentError("s3 sync requires a bucket name")
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self._access_key = access_key
        self._secret_key = secret_key
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the boto3 S3 client."""
        if self._client is not None:
            return self._client

        client_kwargs: dict[str, Any] = {
            "service_name": "s3",
            "region_name": self.region or None,
            # One attempt per request; the caller decides whether to re-run
            "config": Config(
                signature_version="s3v4",
                retries={"total_max_attempts": 1},
            ),
        }
        if self._access_key and self._secret_key:
            client_kwargs["aws_access_key_id"] = self._access_key
            client_kwargs["aws_secret_access_key"] = self._secret_key
        else:
            logger.debug("No explicit S3 credentials, using the default chain")

        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url
            logger.info(f"Using custom S3 endpoint: {self.endpoint_url}")

        self._client = boto3.client(**client_kwargs)
        return self._client

    def _translate_error(self, error: Exception, action: str) -> AzimuthRemoteError:
        """Map a botocore exception to the sync error hierarchy."""
        if isinstance(error, ClientError):
            code = str(error.response.get("Error", {}).get("Code", ""))
            message = error.response.get("Error", {}).get("Message") or code
            text = f"s3: {action} failed ({code}): {message}"
            if code in AUTH_ERROR_CODES:
                return AzimuthAuthenticationError(text)
            if code in ("AccessDenied", "403", "AllAccessDisabled"):
                return AzimuthPermissionError(text)
            if code in NOT_FOUND_ERROR_CODES:
                return AzimuthNotFoundError(text)
            if code in THROTTLE_ERROR_CODES:
                return AzimuthRateLimitError(text)
            return AzimuthRemoteError(text)
        if isinstance(error, EndpointConnectionError):
            return AzimuthNetworkError(f"s3: {action} failed: {error}")
        return AzimuthRemoteError(f"s3: {action} failed: {error}")

    def list(self) -> list[RemoteFile]:
        client = self._get_client()
        files: list[RemoteFile] = []

        try:
            paginator = client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    key = obj.get("Key")
                    etag = obj.get("ETag")
                    # Folder placeholders created by web consoles
                    if not key or etag is None or key.endswith("/"):
                        continue
                    files.append(
                        RemoteFile(
                            key=key,
                            content_tag=etag.strip('"'),
                            modified_at=obj.get("LastModified"),
                            size=obj.get("Size"),
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, f"listing bucket {self.bucket}") from e

        logger.debug(f"Listed {len(files)} object(s) in bucket {self.bucket}")
        return files

    def upload(self, relative_path: str, data: bytes) -> None:
        try:
            self._get_client().put_object(
                Bucket=self.bucket, Key=relative_path, Body=data
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, f"uploading {relative_path}") from e

    def download(self, key: str) -> bytes:
        try:
            response = self._get_client().get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, f"downloading {key}") from e

    def tag_for(self, local_file: LocalFile) -> str:
        return md5_hex(local_file.path.read_bytes())

    def tag_for_bytes(self, data: bytes) -> str:
        return md5_hex(data)

    def __repr__(self) -> str:
        return f"S3Provider(bucket={self.bucket!r}, region={self.region!r})"
