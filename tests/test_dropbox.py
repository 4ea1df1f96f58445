"""Tests for the Dropbox provider."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from azimuth_sync.exceptions import (
    AzimuthAuthenticationError,
    AzimuthInvalidArgumentError,
    AzimuthRemoteError,
)
from azimuth_sync.hashing import dropbox_content_hash
from azimuth_sync.providers.dropbox import DropboxProvider
from azimuth_sync.sync.scanner import LocalFile


def _provider(handler) -> DropboxProvider:
    return DropboxProvider("sl.token", transport=httpx.MockTransport(handler))


class TestDropboxList:
    """Tests for listing the Azimuth folder."""

    def test_list_pages_and_strips_prefix(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            body = json.loads(request.content)
            if request.url.path == "/2/files/list_folder":
                assert body == {"path": "/Azimuth", "recursive": True}
                return httpx.Response(
                    200,
                    json={
                        "entries": [
                            {".tag": "folder", "path_display": "/Azimuth/notes"},
                            {
                                ".tag": "file",
                                "path_display": "/Azimuth/notes/a.md",
                                "content_hash": "hash-a",
                                "server_modified": "2025-01-15T10:30:00Z",
                                "size": 5,
                                "id": "id:a",
                            },
                        ],
                        "cursor": "c1",
                        "has_more": True,
                    },
                )
            assert request.url.path == "/2/files/list_folder/continue"
            assert body == {"cursor": "c1"}
            return httpx.Response(
                200,
                json={
                    "entries": [
                        {
                            ".tag": "file",
                            "path_display": "/azimuth/b.md",
                            "content_hash": "hash-b",
                        }
                    ],
                    "cursor": "c2",
                    "has_more": False,
                },
            )

        files = _provider(handler).list()

        assert [f.key for f in files] == ["notes/a.md", "b.md"]
        assert files[0].content_tag == "hash-a"
        assert files[0].modified_at == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert files[0].size == 5
        assert files[0].remote_id == "id:a"
        assert files[1].modified_at is None
        assert requests[0].headers["Authorization"] == "Bearer sl.token"

    def test_missing_folder_lists_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                409,
                json={
                    "error_summary": "path/not_found/..",
                    "error": {".tag": "path", "path": {".tag": "not_found"}},
                },
            )

        assert _provider(handler).list() == []

    def test_other_conflict_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"error_summary": "path/malformed_path/"})

        with pytest.raises(AzimuthRemoteError, match="malformed_path"):
            _provider(handler).list()

    def test_expired_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error_summary": "expired_access_token/"})

        with pytest.raises(AzimuthAuthenticationError):
            _provider(handler).list()


class TestDropboxTransfers:
    """Tests for uploads and downloads."""

    def test_upload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["arg"] = json.loads(request.headers["Dropbox-API-Arg"])
            seen["body"] = request.content
            return httpx.Response(200, json={"name": "a.md"})

        _provider(handler).upload("notes/a.md", b"hello")

        assert seen["url"] == "https://content.dropboxapi.com/2/files/upload"
        assert seen["arg"]["path"] == "/Azimuth/notes/a.md"
        assert seen["arg"]["mode"] == "overwrite"
        assert seen["body"] == b"hello"

    def test_upload_non_ascii_name(self):
        """Non-ASCII names are escaped in the API argument header."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["raw"] = request.headers["Dropbox-API-Arg"]
            return httpx.Response(200, json={})

        _provider(handler).upload("Ünïcode.md", b"x")

        assert "\\u00dc" in seen["raw"]

    def test_upload_session_for_large_files(self, monkeypatch):
        from azimuth_sync.providers import dropbox

        monkeypatch.setattr(dropbox, "UPLOAD_SESSION_THRESHOLD", 10)
        monkeypatch.setattr(dropbox, "UPLOAD_SESSION_CHUNK_SIZE", 4)
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(
                (
                    request.url.path,
                    json.loads(request.headers["Dropbox-API-Arg"]),
                    request.content,
                )
            )
            if request.url.path.endswith("/start"):
                return httpx.Response(200, json={"session_id": "s1"})
            return httpx.Response(200, json={})

        _provider(handler).upload("big.md", b"0123456789AB")

        paths = [c[0] for c in calls]
        assert paths == [
            "/2/files/upload_session/start",
            "/2/files/upload_session/append_v2",
            "/2/files/upload_session/finish",
        ]
        assert b"".join(c[2] for c in calls) == b"0123456789AB"
        finish_arg = calls[-1][1]
        assert finish_arg["cursor"] == {"session_id": "s1", "offset": 8}
        assert finish_arg["commit"]["path"] == "/Azimuth/big.md"

    def test_download(self):
        def handler(request: httpx.Request) -> httpx.Response:
            arg = json.loads(request.headers["Dropbox-API-Arg"])
            assert arg == {"path": "/Azimuth/notes/a.md"}
            return httpx.Response(200, content=b"remote bytes")

        assert _provider(handler).download("notes/a.md") == b"remote bytes"

    def test_tag_for_matches_content_hash(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_bytes(b"hello")
        local_file = LocalFile.from_path(path, tmp_path)
        provider = DropboxProvider("sl.token")

        assert provider.tag_for(local_file) == dropbox_content_hash(b"hello")
        assert provider.tag_for_bytes(b"hello") == dropbox_content_hash(b"hello")

    def test_requires_token(self):
        with pytest.raises(AzimuthInvalidArgumentError):
            DropboxProvider("")

    def test_remote_path(self):
        assert DropboxProvider("t").remote_path("a/b.md") == "/Azimuth/a/b.md"
        assert DropboxProvider("t", root_folder="/Other/").remote_path("x") == "/Other/x"
