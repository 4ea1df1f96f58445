"""Dropbox provider (HTTP API v2)."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..hashing import dropbox_content_hash
from ..sync.scanner import LocalFile, RemoteFile
from ..utils import REMOTE_ROOT_FOLDER, parse_iso_timestamp
from .http import HttpProvider

logger = logging.getLogger(__name__)

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"

# Single-request uploads are limited to 150 MB
UPLOAD_SESSION_THRESHOLD: int = 150 * 1024 * 1024
UPLOAD_SESSION_CHUNK_SIZE: int = 8 * 1024 * 1024


def _api_arg(arg: dict[str, Any]) -> str:
    """Encode a Dropbox-API-Arg header value (non-ASCII escaped as JSON)."""
    return json.dumps(arg, ensure_ascii=True)


class DropboxProvider(HttpProvider):
    """Syncs with ``/Azimuth`` in the user's Dropbox.

    Remote paths are the relative path prefixed with the root folder; the
    content tag is Dropbox's own ``content_hash``.
    """

    name = "dropbox"
    display_name = "Dropbox"

    def __init__(
        self,
        access_token: str,
        root_folder: str = REMOTE_ROOT_FOLDER,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(access_token, timeout=timeout, transport=transport)
        self.root_folder = "/" + root_folder.strip("/")

    def remote_path(self, relative_path: str) -> str:
        """Dropbox path for a relative key."""
        return f"{self.root_folder}/{relative_path.lstrip('/')}"

    def _relative_key(self, path_display: str) -> str | None:
        prefix = self.root_folder + "/"
        # Dropbox paths are case-insensitive
        if not path_display.lower().startswith(prefix.lower()):
            return None
        return path_display[len(prefix) :]

    def list(self) -> list[RemoteFile]:
        response = self._send(
            "POST",
            f"{API_URL}/files/list_folder",
            check=False,
            json={"path": self.root_folder, "recursive": True},
        )
        if response.status_code == 409:
            summary = self._error_message(response) or ""
            if "not_found" in summary:
                logger.debug(f"Dropbox folder {self.root_folder} does not exist yet")
                return []
        self._raise_for_status(response)
        data = self._decode_json(response)

        files: list[RemoteFile] = []
        while True:
            for entry in data.get("entries", []):
                if entry.get(".tag") != "file":
                    continue
                key = self._relative_key(entry.get("path_display", ""))
                if not key:
                    continue
                files.append(
                    RemoteFile(
                        key=key,
                        content_tag=entry.get("content_hash", ""),
                        modified_at=parse_iso_timestamp(entry.get("server_modified")),
                        size=entry.get("size"),
                        remote_id=entry.get("id"),
                    )
                )

            if not data.get("has_more"):
                break
            data = self._request_json(
                "POST",
                f"{API_URL}/files/list_folder/continue",
                json={"cursor": data["cursor"]},
            )

        logger.debug(f"Listed {len(files)} Dropbox file(s)")
        return files

    def upload(self, relative_path: str, data: bytes) -> None:
        commit = {
            "path": self.remote_path(relative_path),
            "mode": "overwrite",
            "autorename": False,
            "mute": True,
        }
        if len(data) > UPLOAD_SESSION_THRESHOLD:
            self._upload_session(data, commit)
            return

        self._send(
            "POST",
            f"{CONTENT_URL}/files/upload",
            headers={
                "Dropbox-API-Arg": _api_arg(commit),
                "Content-Type": "application/octet-stream",
            },
            content=data,
        )

    def _upload_session(self, data: bytes, commit: dict[str, Any]) -> None:
        """Upload a large file in chunks through an upload session."""
        first = data[:UPLOAD_SESSION_CHUNK_SIZE]
        result = self._request_json(
            "POST",
            f"{CONTENT_URL}/files/upload_session/start",
            headers={
                "Dropbox-API-Arg": _api_arg({"close": False}),
                "Content-Type": "application/octet-stream",
            },
            content=first,
        )
        session_id = result["session_id"]
        offset = len(first)

        while len(data) - offset > UPLOAD_SESSION_CHUNK_SIZE:
            chunk = data[offset : offset + UPLOAD_SESSION_CHUNK_SIZE]
            self._send(
                "POST",
                f"{CONTENT_URL}/files/upload_session/append_v2",
                headers={
                    "Dropbox-API-Arg": _api_arg(
                        {
                            "cursor": {"session_id": session_id, "offset": offset},
                            "close": False,
                        }
                    ),
                    "Content-Type": "application/octet-stream",
                },
                content=chunk,
            )
            offset += len(chunk)

        self._send(
            "POST",
            f"{CONTENT_URL}/files/upload_session/finish",
            headers={
                "Dropbox-API-Arg": _api_arg(
                    {
                        "cursor": {"session_id": session_id, "offset": offset},
                        "commit": commit,
                    }
                ),
                "Content-Type": "application/octet-stream",
            },
            content=data[offset:],
        )

    def download(self, key: str) -> bytes:
        response = self._send(
            "POST",
            f"{CONTENT_URL}/files/download",
            headers={"Dropbox-API-Arg": _api_arg({"path": self.remote_path(key)})},
        )
        return response.content

    def tag_for(self, local_file: LocalFile) -> str:
        return dropbox_content_hash(local_file.path.read_bytes())

    def tag_for_bytes(self, data: bytes) -> str:
        return dropbox_content_hash(data)
