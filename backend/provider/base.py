"""Base protocol and data classes for remote storage providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path


@dataclass
class RemoteFile:
    """A file as reported by the storage provider."""

    id: str
    name: str
    mime_type: str
    size: int | None = None
    created_time: str | None = None
    web_content_link: str | None = None
    web_view_link: str | None = None
    thumbnail_link: str | None = None
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class UploadSource:
    """A locally spooled file waiting to be created on the provider."""

    name: str
    mime_type: str
    path: Path


@dataclass
class Thumbnail:
    """Thumbnail bytes fetched from the provider."""

    content: bytes
    content_type: str


class TokenSource(Protocol):
    """Supplies bearer tokens to provider adapters."""

    async def access_token(self) -> str:
        """Return a usable access token, refreshing it first if it has expired."""
        ...

    async def refresh(self) -> str:
        """Force a refresh after the provider rejected the current token."""
        ...


@runtime_checkable
class StorageProvider(Protocol):
    """Protocol for the remote file store behind the file gateway."""

    async def list_files(self, trashed: bool) -> list[RemoteFile]:
        """List files in the target folder filtered on the trashed flag."""
        ...

    async def get_properties(self, file_id: str) -> dict[str, str]:
        """Return the custom key/value properties of a file."""
        ...

    async def update_properties(self, file_id: str, properties: dict[str, str | None]) -> None:
        """Merge properties into a file. A ``None`` value removes the key."""
        ...

    async def get_thumbnail_link(self, file_id: str) -> str | None:
        """Return the provider-hosted thumbnail URL, if any."""
        ...

    async def fetch_thumbnail(self, url: str) -> Thumbnail:
        """Download thumbnail bytes from a provider-hosted URL."""
        ...

    async def create_file(self, source: UploadSource) -> RemoteFile:
        """Create a new file in the target folder from a local copy."""
        ...

    async def set_trashed(self, file_id: str, trashed: bool) -> None:
        """Move a file to or out of the trash."""
        ...

    async def delete_file(self, file_id: str) -> None:
        """Permanently delete a file."""
        ...
