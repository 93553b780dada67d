"""Google Drive v3 storage provider using the REST API over httpx."""

from __future__ import annotations

import json
import logging
import secrets
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from backend.provider.base import RemoteFile, Thumbnail, UploadSource

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from backend.provider.base import TokenSource

logger = logging.getLogger(__name__)

DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

UPLOAD_CHUNK_SIZE = 1024 * 1024

FILE_FIELDS = (
    "id, name, thumbnailLink, webContentLink, webViewLink, createdTime, mimeType, size, properties"
)


class DriveAPIError(Exception):
    """Raised when a Drive request fails or returns a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _parse_size(value: object) -> int | None:
    """Drive reports sizes as decimal strings; folders and native docs have none."""
    if value is None:
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


def _remote_file(data: dict[str, Any]) -> RemoteFile:
    properties = data.get("properties") or {}
    return RemoteFile(
        id=data["id"],
        name=data.get("name", ""),
        mime_type=data.get("mimeType", "application/octet-stream"),
        size=_parse_size(data.get("size")),
        created_time=data.get("createdTime"),
        web_content_link=data.get("webContentLink"),
        web_view_link=data.get("webViewLink"),
        thumbnail_link=data.get("thumbnailLink"),
        properties={str(k): str(v) for k, v in properties.items()},
    )


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _file_url(file_id: str) -> str:
    return f"{DRIVE_FILES_URL}/{quote(file_id, safe='')}"


class MultipartRelatedBody:
    """Drive multipart upload body: JSON metadata part, then the media part.

    The media is streamed from disk. Each iteration starts over, so the body
    can be sent again when a request is replayed after a token refresh.
    """

    def __init__(
        self, boundary: str, metadata: dict[str, Any], path: Path, mime_type: str
    ) -> None:
        delimiter = f"--{boundary}\r\n".encode()
        self._head = b"".join(
            [
                delimiter,
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                b"\r\n",
                delimiter,
                f"Content-Type: {mime_type}\r\n\r\n".encode(),
            ]
        )
        self._tail = f"\r\n--{boundary}--\r\n".encode()
        self._path = path

    def __len__(self) -> int:
        return len(self._head) + self._path.stat().st_size + len(self._tail)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._head
        with self._path.open("rb") as fh:
            while chunk := fh.read(UPLOAD_CHUNK_SIZE):
                yield chunk
        yield self._tail


class GoogleDriveProvider:
    """Storage provider for files under a single Drive folder."""

    def __init__(
        self,
        tokens: TokenSource,
        folder_id: str,
        *,
        page_size: int = 100,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._tokens = tokens
        self._folder_id = folder_id
        self._page_size = page_size
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send an authorized request, refreshing the token once on 401."""
        extra_headers = headers or {}
        async with self._client() as client:
            try:
                token = await self._tokens.access_token()
                resp = await client.request(
                    method,
                    url,
                    headers={**extra_headers, "Authorization": f"Bearer {token}"},
                    **kwargs,
                )
                if resp.status_code == 401:
                    logger.info("Drive rejected access token, refreshing")
                    token = await self._tokens.refresh()
                    resp = await client.request(
                        method,
                        url,
                        headers={**extra_headers, "Authorization": f"Bearer {token}"},
                        **kwargs,
                    )
            except httpx.HTTPError as exc:
                msg = f"Drive {method} {url} HTTP error: {exc}"
                raise DriveAPIError(msg) from exc
        if resp.status_code >= 400:
            msg = f"Drive {method} {url} failed: {resp.status_code} {resp.text[:200]}"
            raise DriveAPIError(msg, status_code=resp.status_code)
        return resp

    async def list_files(self, trashed: bool) -> list[RemoteFile]:
        """List files in the target folder filtered on the trashed flag."""
        folder = _escape_query_value(self._folder_id)
        query = f"'{folder}' in parents and trashed = {'true' if trashed else 'false'}"
        resp = await self._request(
            "GET",
            DRIVE_FILES_URL,
            params={
                "q": query,
                "pageSize": str(self._page_size),
                "fields": f"files({FILE_FIELDS})",
            },
        )
        return [_remote_file(item) for item in resp.json().get("files", [])]

    async def get_properties(self, file_id: str) -> dict[str, str]:
        """Return the custom key/value properties of a file."""
        resp = await self._request(
            "GET", _file_url(file_id), params={"fields": "properties"}
        )
        properties = resp.json().get("properties") or {}
        return {str(k): str(v) for k, v in properties.items()}

    async def update_properties(self, file_id: str, properties: dict[str, str | None]) -> None:
        """Merge properties into a file. A ``None`` value removes the key."""
        await self._request(
            "PATCH",
            _file_url(file_id),
            params={"fields": "id"},
            json={"properties": properties},
        )

    async def get_thumbnail_link(self, file_id: str) -> str | None:
        """Return the provider-hosted thumbnail URL, if any."""
        resp = await self._request(
            "GET", _file_url(file_id), params={"fields": "thumbnailLink"}
        )
        link = resp.json().get("thumbnailLink")
        return str(link) if link else None

    async def fetch_thumbnail(self, url: str) -> Thumbnail:
        """Download thumbnail bytes. Thumbnail links are pre-signed and fetched without auth."""
        async with self._client() as client:
            try:
                resp = await client.get(url, follow_redirects=True)
            except httpx.HTTPError as exc:
                msg = f"Thumbnail fetch HTTP error: {exc}"
                raise DriveAPIError(msg) from exc
        if resp.status_code != 200:
            msg = f"Thumbnail fetch failed: {resp.status_code}"
            raise DriveAPIError(msg, status_code=resp.status_code)
        content_type = resp.headers.get("content-type", "application/octet-stream")
        return Thumbnail(content=resp.content, content_type=content_type)

    async def create_file(self, source: UploadSource) -> RemoteFile:
        """Create a file in the target folder using a multipart upload."""
        metadata = {"name": source.name, "parents": [self._folder_id]}
        boundary = secrets.token_hex(16)
        body = MultipartRelatedBody(boundary, metadata, source.path, source.mime_type)
        resp = await self._request(
            "POST",
            DRIVE_UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id, name, mimeType, size"},
            headers={
                "Content-Type": f"multipart/related; boundary={boundary}",
                "Content-Length": str(len(body)),
            },
            content=body,
        )
        return _remote_file(resp.json())

    async def set_trashed(self, file_id: str, trashed: bool) -> None:
        """Move a file to or out of the trash."""
        await self._request(
            "PATCH",
            _file_url(file_id),
            params={"fields": "id"},
            json={"trashed": trashed},
        )

    async def delete_file(self, file_id: str) -> None:
        """Permanently delete a file."""
        await self._request("DELETE", _file_url(file_id))
