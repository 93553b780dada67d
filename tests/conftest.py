"""Shared test fixtures for Drive Tags."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from backend.config import Settings
from backend.main import create_app
from backend.provider.base import RemoteFile, Thumbnail, UploadSource
from backend.provider.google_drive import DriveAPIError
from backend.schemas.auth import Credential
from backend.services.auth_service import CredentialStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from fastapi import FastAPI

TEST_FOLDER_ID = "folder-under-test"


class FakeDriveProvider:
    """In-memory stand-in for the Drive folder.

    Operations named in ``failing`` raise DriveAPIError, mimicking an
    upstream outage for that call only.
    """

    def __init__(self) -> None:
        self.files: dict[str, RemoteFile] = {}
        self.trashed: set[str] = set()
        self.thumbnails: dict[str, Thumbnail] = {}
        self.failing: set[str] = set()
        self.uploaded: list[tuple[UploadSource, bytes]] = []
        self.property_writes: list[tuple[str, dict[str, str | None]]] = []
        # When set, writes to these files are accepted but not reflected on re-read.
        self.lagging: set[str] = set()
        self._next_id = 1

    def add(self, remote: RemoteFile, *, trashed: bool = False) -> RemoteFile:
        self.files[remote.id] = remote
        if trashed:
            self.trashed.add(remote.id)
        return remote

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise DriveAPIError(f"{operation} failed", status_code=500)

    def _get(self, file_id: str) -> RemoteFile:
        remote = self.files.get(file_id)
        if remote is None:
            raise DriveAPIError(f"File not found: {file_id}", status_code=404)
        return remote

    async def list_files(self, trashed: bool) -> list[RemoteFile]:
        self._check("list_files")
        return [f for f in self.files.values() if (f.id in self.trashed) == trashed]

    async def get_properties(self, file_id: str) -> dict[str, str]:
        self._check("get_properties")
        return dict(self._get(file_id).properties)

    async def update_properties(self, file_id: str, properties: dict[str, str | None]) -> None:
        self._check("update_properties")
        remote = self._get(file_id)
        self.property_writes.append((file_id, dict(properties)))
        if file_id in self.lagging:
            return
        for key, value in properties.items():
            if value is None:
                remote.properties.pop(key, None)
            else:
                remote.properties[key] = value

    async def get_thumbnail_link(self, file_id: str) -> str | None:
        self._check("get_thumbnail_link")
        return self._get(file_id).thumbnail_link

    async def fetch_thumbnail(self, url: str) -> Thumbnail:
        self._check("fetch_thumbnail")
        thumbnail = self.thumbnails.get(url)
        if thumbnail is None:
            raise DriveAPIError("Thumbnail fetch failed: 404", status_code=404)
        return thumbnail

    async def create_file(self, source: UploadSource) -> RemoteFile:
        self._check("create_file")
        if source.name.startswith("fail-"):
            raise DriveAPIError(f"Upload of {source.name} rejected", status_code=400)
        content = source.path.read_bytes()
        self.uploaded.append((source, content))
        remote = RemoteFile(
            id=f"uploaded-{self._next_id}",
            name=source.name,
            mime_type=source.mime_type,
            size=len(content),
        )
        self._next_id += 1
        return self.add(remote)

    async def set_trashed(self, file_id: str, trashed: bool) -> None:
        self._check("set_trashed")
        self._get(file_id)
        if trashed:
            self.trashed.add(file_id)
        else:
            self.trashed.discard(file_id)

    async def delete_file(self, file_id: str) -> None:
        self._check("delete_file")
        self._get(file_id)
        del self.files[file_id]
        self.trashed.discard(file_id)


def app_of(client: AsyncClient) -> FastAPI:
    """Return the application behind a test client."""
    transport = client._transport
    return transport.app  # type: ignore[attr-defined,no-any-return]


@asynccontextmanager
async def create_test_client(
    settings: Settings,
    provider: FakeDriveProvider | None = None,
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Performs the startup work of the lifespan because ASGITransport does
    not trigger it, and swaps the Drive provider for an in-memory fake.
    """
    app = create_app(settings)
    settings.validate_runtime_security()
    settings.upload_temp_dir.mkdir(parents=True, exist_ok=True)
    app.state.provider = provider if provider is not None else FakeDriveProvider()
    app.state.auth_session.load()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with temporary paths."""
    return Settings(
        _env_file=None,
        debug=True,
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        google_redirect_uri="http://test/callback",
        drive_folder_id=TEST_FOLDER_ID,
        token_path=tmp_path / "tokens.json",
        upload_temp_dir=tmp_path / "uploads-temp",
        frontend_dir=tmp_path / "frontend",
    )


@pytest.fixture
def stored_credential(test_settings: Settings) -> Credential:
    """Persist a credential record so the app starts authenticated."""
    credential = Credential(access_token="test-access-token", refresh_token="test-refresh-token")
    CredentialStore(test_settings.token_path).save(credential)
    return credential


@pytest.fixture
def provider() -> FakeDriveProvider:
    """Create an empty in-memory Drive folder."""
    return FakeDriveProvider()


@pytest.fixture
async def client(
    test_settings: Settings,
    stored_credential: Credential,
    provider: FakeDriveProvider,
) -> AsyncGenerator[AsyncClient]:
    """Create an authenticated test client backed by the fake provider."""
    async with create_test_client(test_settings, provider) as ac:
        yield ac


@pytest.fixture
async def anonymous_client(
    test_settings: Settings,
    provider: FakeDriveProvider,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with no stored credential."""
    async with create_test_client(test_settings, provider) as ac:
        yield ac
