"""Tests for the S3 provider."""

import io
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from azimuth_sync.exceptions import (
    AzimuthAuthenticationError,
    AzimuthInvalidArgumentError,
    AzimuthNetworkError,
    AzimuthNotFoundError,
    AzimuthPermissionError,
    AzimuthRateLimitError,
    AzimuthRemoteError,
)
from azimuth_sync.hashing import md5_hex
from azimuth_sync.providers.s3 import S3Provider


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} message"}}, operation)


@pytest.fixture
def mock_client():
    """Create a mock boto3 S3 client."""
    return Mock()


@pytest.fixture
def provider(mock_client):
    return S3Provider(bucket="notes", region="eu-central-1", client=mock_client)


class TestS3Client:
    """Tests for client construction."""

    @patch("azimuth_sync.providers.s3.boto3.client")
    def test_client_uses_explicit_credentials(self, mock_boto_client):
        provider = S3Provider(
            bucket="notes",
            region="eu-central-1",
            access_key="AKIA",
            secret_key="SECRET",
            endpoint_url="https://minio.local",
        )

        provider._get_client()
        provider._get_client()

        mock_boto_client.assert_called_once()
        kwargs = mock_boto_client.call_args.kwargs
        assert kwargs["service_name"] == "s3"
        assert kwargs["region_name"] == "eu-central-1"
        assert kwargs["aws_access_key_id"] == "AKIA"
        assert kwargs["aws_secret_access_key"] == "SECRET"
        assert kwargs["endpoint_url"] == "https://minio.local"

    def test_bucket_required(self):
        with pytest.raises(AzimuthInvalidArgumentError):
            S3Provider(bucket="")


class TestS3Operations:
    """Tests for list, upload and download."""

    def test_list(self, provider, mock_client):
        modified = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
        mock_client.get_paginator.return_value.paginate.return_value = [
            {
                "Contents": [
                    {"Key": "a.md", "ETag": '"abc123"', "LastModified": modified, "Size": 5},
                    {"Key": "folder/", "ETag": '"d41d8"', "Size": 0},
                ]
            },
            {"Contents": [{"Key": "sub/b.md", "ETag": '"def456"', "Size": 7}]},
            {},
        ]

        files = provider.list()

        mock_client.get_paginator.assert_called_once_with("list_objects_v2")
        mock_client.get_paginator.return_value.paginate.assert_called_once_with(
            Bucket="notes"
        )
        assert [f.key for f in files] == ["a.md", "sub/b.md"]
        assert files[0].content_tag == "abc123"
        assert files[0].modified_at == modified
        assert files[1].size == 7

    def test_upload(self, provider, mock_client):
        provider.upload("notes/a.md", b"hello")

        mock_client.put_object.assert_called_once_with(
            Bucket="notes", Key="notes/a.md", Body=b"hello"
        )

    def test_download(self, provider, mock_client):
        mock_client.get_object.return_value = {"Body": io.BytesIO(b"remote")}

        assert provider.download("a.md") == b"remote"
        mock_client.get_object.assert_called_once_with(Bucket="notes", Key="a.md")

    def test_tag_matches_single_part_etag(self, provider):
        assert provider.tag_for_bytes(b"hello") == md5_hex(b"hello")


class TestS3Errors:
    """Tests for mapping botocore errors."""

    @pytest.mark.parametrize(
        "code, error_class",
        [
            ("InvalidAccessKeyId", AzimuthAuthenticationError),
            ("SignatureDoesNotMatch", AzimuthAuthenticationError),
            ("AccessDenied", AzimuthPermissionError),
            ("NoSuchKey", AzimuthNotFoundError),
            ("NoSuchBucket", AzimuthNotFoundError),
            ("SlowDown", AzimuthRateLimitError),
            ("InternalError", AzimuthRemoteError),
        ],
    )
    def test_client_errors(self, provider, mock_client, code, error_class):
        mock_client.get_object.side_effect = _client_error(code)

        with pytest.raises(error_class, match=code):
            provider.download("a.md")

    def test_connection_error(self, provider, mock_client):
        mock_client.put_object.side_effect = EndpointConnectionError(
            endpoint_url="https://s3.eu-central-1.amazonaws.com"
        )

        with pytest.raises(AzimuthNetworkError):
            provider.upload("a.md", b"x")

    def test_list_error(self, provider, mock_client):
        mock_client.get_paginator.return_value.paginate.side_effect = _client_error(
            "NoSuchBucket", "ListObjectsV2"
        )

        with pytest.raises(AzimuthNotFoundError, match="notes"):
            provider.list()
