"""Google Drive provider (Drive API v3)."""

from __future__ import annotations

import json
import logging
import threading
import uuid

import httpx

from ..exceptions import AzimuthInvalidResponseError, AzimuthNotFoundError
from ..hashing import md5_hex
from ..sync.scanner import LocalFile, RemoteFile
from ..utils import REMOTE_ROOT_FOLDER, parse_iso_timestamp
from .http import HttpProvider

logger = logging.getLogger(__name__)

FILES_URL = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
LIST_PAGE_SIZE = 1000


def _quote_query_value(value: str) -> str:
    """Escape a string literal for a Drive search query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _is_newer(candidate: RemoteFile, current: RemoteFile) -> bool:
    if candidate.modified_at is None:
        return False
    return current.modified_at is None or candidate.modified_at > current.modified_at


class GoogleDriveProvider(HttpProvider):
    """Syncs with a folder named ``Azimuth`` in the user's Google Drive.

    The folder is located, or created, before the first list, upload or
    download. Files live directly in that folder and are identified by name;
    the name is the full relative path (``notes/a.md``), so nested notes are
    kept without creating Drive sub-folders. The content tag is
    ``md5Checksum``.
    """

    name = "googledrive"
    display_name = "Google Drive"

    def __init__(
        self,
        access_token: str,
        folder_name: str = REMOTE_ROOT_FOLDER,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(access_token, timeout=timeout, transport=transport)
        self.folder_name = folder_name
        self._folder_id: str | None = None
        self._file_ids: dict[str, str] = {}
        self._folder_lock = threading.Lock()

    def get_folder_id(self) -> str:
        """Locate the sync folder, creating it if it does not exist.

        Returns:
            Drive file id of the folder
        """
        with self._folder_lock:
            if self._folder_id is None:
                self._folder_id = self._find_folder() or self._create_folder()
            return self._folder_id

    def _find_folder(self) -> str | None:
        query = (
            f"name='{_quote_query_value(self.folder_name)}' "
            f"and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        data = self._request_json(
            "GET", FILES_URL, params={"q": query, "fields": "files(id,name)"}
        )
        if "files" not in data:
            raise AzimuthInvalidResponseError(
                f"{self.name}: failed to search for folder {self.folder_name}"
            )
        folders = data["files"]
        if folders:
            logger.debug(f"Found Drive folder {self.folder_name} ({folders[0]['id']})")
            return folders[0]["id"]
        return None

    def _create_folder(self) -> str:
        data = self._request_json(
            "POST",
            FILES_URL,
            params={"fields": "id"},
            json={"name": self.folder_name, "mimeType": FOLDER_MIME_TYPE},
        )
        folder_id = data.get("id")
        if not folder_id:
            raise AzimuthInvalidResponseError(
                f"{self.name}: folder creation returned no id"
            )
        logger.info(f"Created Google Drive folder {self.folder_name}")
        return folder_id

    def list(self) -> list[RemoteFile]:
        folder_id = self.get_folder_id()
        query = (
            f"'{folder_id}' in parents and trashed=false "
            f"and mimeType!='{FOLDER_MIME_TYPE}'"
        )
        by_key: dict[str, RemoteFile] = {}
        page_token: str | None = None

        while True:
            params = {
                "q": query,
                "fields": "nextPageToken, files(id,name,md5Checksum,modifiedTime,size)",
                "pageSize": str(LIST_PAGE_SIZE),
            }
            if page_token:
                params["pageToken"] = page_token
            data = self._request_json("GET", FILES_URL, params=params)

            for entry in data.get("files", []):
                size = entry.get("size")
                remote_file = RemoteFile(
                    key=entry["name"],
                    content_tag=entry.get("md5Checksum", ""),
                    modified_at=parse_iso_timestamp(entry.get("modifiedTime")),
                    size=int(size) if size is not None else None,
                    remote_id=entry["id"],
                )
                existing = by_key.get(remote_file.key)
                if existing is not None:
                    # Drive allows duplicate names; the newest copy wins
                    logger.warning(
                        f"Duplicate Drive file name {remote_file.key}, "
                        "using the most recently modified copy"
                    )
                    if not _is_newer(remote_file, existing):
                        continue
                by_key[remote_file.key] = remote_file

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        for key, remote_file in by_key.items():
            if remote_file.remote_id:
                self._file_ids[key] = remote_file.remote_id

        logger.debug(f"Listed {len(by_key)} Google Drive file(s)")
        return sorted(by_key.values(), key=lambda f: f.key)

    def _find_file_id(self, key: str) -> str | None:
        if key in self._file_ids:
            return self._file_ids[key]
        folder_id = self.get_folder_id()
        query = (
            f"name='{_quote_query_value(key)}' and '{folder_id}' in parents "
            "and trashed=false"
        )
        data = self._request_json(
            "GET", FILES_URL, params={"q": query, "fields": "files(id)"}
        )
        files = data.get("files", [])
        if not files:
            return None
        self._file_ids[key] = files[0]["id"]
        return files[0]["id"]

    def upload(self, relative_path: str, data: bytes) -> None:
        file_id = self._find_file_id(relative_path)
        if file_id is not None:
            self._send(
                "PATCH",
                f"{UPLOAD_URL}/{file_id}",
                params={"uploadType": "media"},
                headers={"Content-Type": "application/octet-stream"},
                content=data,
            )
            return

        boundary = uuid.uuid4().hex
        metadata = {"name": relative_path, "parents": [self.get_folder_id()]}
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode(),
                b"Content-Type: application/octet-stream\r\n\r\n",
                data,
                f"\r\n--{boundary}--".encode(),
            ]
        )
        created = self._request_json(
            "POST",
            UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id"},
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            content=body,
        )
        if created.get("id"):
            self._file_ids[relative_path] = created["id"]

    def download(self, key: str) -> bytes:
        file_id = self._find_file_id(key)
        if file_id is None:
            raise AzimuthNotFoundError(f"{self.name}: no file named {key}")
        response = self._send(
            "GET", f"{FILES_URL}/{file_id}", params={"alt": "media"}
        )
        return response.content

    def tag_for(self, local_file: LocalFile) -> str:
        return md5_hex(local_file.path.read_bytes())

    def tag_for_bytes(self, data: bytes) -> str:
        return md5_hex(data)
