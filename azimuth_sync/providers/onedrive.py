"""OneDrive provider (Microsoft Graph v1.0)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..exceptions import AzimuthNetworkError, AzimuthNotFoundError
from ..hashing import quickxor_hash
from ..sync.scanner import LocalFile, RemoteFile
from ..utils import REMOTE_ROOT_FOLDER, parse_iso_timestamp
from .http import HttpProvider

logger = logging.getLogger(__name__)

GRAPH_URL = "https://graph.microsoft.com/v1.0"

# Simple PUT uploads are limited to 4 MB
SIMPLE_UPLOAD_LIMIT: int = 4 * 1024 * 1024

# Upload session chunks must be a multiple of 320 KiB
UPLOAD_CHUNK_SIZE: int = 16 * 320 * 1024


class OneDriveProvider(HttpProvider):
    """Syncs with ``/Azimuth`` in the user's OneDrive.

    Items are addressed by path (``root:/Azimuth/<key>:``). The listing walks
    the folder tree below the root folder; the content tag is the
    ``quickXorHash`` Graph reports for every file.
    """

    name = "onedrive"
    display_name = "OneDrive"

    def __init__(
        self,
        access_token: str,
        root_folder: str = REMOTE_ROOT_FOLDER,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(access_token, timeout=timeout, transport=transport)
        self.root_folder = root_folder.strip("/")

    def item_url(self, relative_path: str) -> str:
        """Graph URL addressing a key by path (without trailing segment)."""
        path = quote(f"{self.root_folder}/{relative_path.lstrip('/')}", safe="/")
        return f"{GRAPH_URL}/me/drive/root:/{path}:"

    def list(self) -> list[RemoteFile]:
        root_url = f"{GRAPH_URL}/me/drive/root:/{quote(self.root_folder, safe='/')}:/children"
        try:
            files = self._list_children(root_url, prefix="")
        except AzimuthNotFoundError:
            logger.debug(f"OneDrive folder {self.root_folder} does not exist yet")
            return []
        logger.debug(f"Listed {len(files)} OneDrive file(s)")
        return files

    def _list_children(self, url: str, prefix: str) -> list[RemoteFile]:
        files: list[RemoteFile] = []
        folders: list[tuple[str, str]] = []
        next_url: str | None = url

        while next_url:
            data = self._request_json("GET", next_url)
            for item in data.get("value", []):
                name = item.get("name", "")
                if "folder" in item:
                    folders.append((item["id"], f"{prefix}{name}/"))
                elif "file" in item:
                    files.append(self._to_remote_file(item, f"{prefix}{name}"))
            next_url = data.get("@odata.nextLink")

        for folder_id, folder_prefix in folders:
            files.extend(
                self._list_children(
                    f"{GRAPH_URL}/me/drive/items/{folder_id}/children", folder_prefix
                )
            )
        return files

    def _to_remote_file(self, item: dict[str, Any], key: str) -> RemoteFile:
        hashes = item.get("file", {}).get("hashes", {})
        return RemoteFile(
            key=key,
            content_tag=hashes.get("quickXorHash", ""),
            modified_at=parse_iso_timestamp(item.get("lastModifiedDateTime")),
            size=item.get("size"),
            remote_id=item.get("id"),
        )

    def upload(self, relative_path: str, data: bytes) -> None:
        if len(data) <= SIMPLE_UPLOAD_LIMIT:
            self._send(
                "PUT",
                f"{self.item_url(relative_path)}/content",
                headers={"Content-Type": "application/octet-stream"},
                content=data,
            )
            return
        self._upload_session(relative_path, data)

    def _upload_session(self, relative_path: str, data: bytes) -> None:
        """Upload a large file in chunks through an upload session."""
        session = self._request_json(
            "POST",
            f"{self.item_url(relative_path)}/createUploadSession",
            json={"item": {"@microsoft.graph.conflictBehavior": "replace"}},
        )
        upload_url = session["uploadUrl"]
        total = len(data)

        # The upload URL is pre-authenticated and must not carry the token
        with httpx.Client(
            timeout=httpx.Timeout(self.timeout), transport=self._transport
        ) as upload_client:
            for start in range(0, total, UPLOAD_CHUNK_SIZE):
                chunk = data[start : start + UPLOAD_CHUNK_SIZE]
                end = start + len(chunk) - 1
                try:
                    response = upload_client.put(
                        upload_url,
                        headers={
                            "Content-Length": str(len(chunk)),
                            "Content-Range": f"bytes {start}-{end}/{total}",
                        },
                        content=chunk,
                    )
                except httpx.RequestError as e:
                    raise AzimuthNetworkError(
                        f"{self.name}: network error: {e}"
                    ) from e
                self._raise_for_status(response)

    def download(self, key: str) -> bytes:
        response = self._send("GET", f"{self.item_url(key)}/content")
        return response.content

    def tag_for(self, local_file: LocalFile) -> str:
        return quickxor_hash(local_file.path.read_bytes())

    def tag_for_bytes(self, data: bytes) -> str:
        return quickxor_hash(data)
