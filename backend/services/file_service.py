"""File service: listing, search, sorting and uploads against the storage provider."""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from backend.provider.base import RemoteFile, UploadSource
from backend.schemas.file import FileRecord
from backend.services.tag_service import TAGS_PROPERTY, parse_tags

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import UploadFile

    from backend.provider.base import StorageProvider
    from backend.schemas.file import SortField, SortOrder

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)
_COPY_CHUNK_SIZE = 1024 * 1024


class UploadTooLargeError(ValueError):
    """Raised when an uploaded file exceeds the configured size limit."""


class UploadFailedError(Exception):
    """Raised when one or more provider creations in a batch failed."""

    def __init__(self, failures: list[tuple[str, BaseException]]) -> None:
        names = ", ".join(name for name, _ in failures)
        super().__init__(f"Failed to upload: {names}")
        self.failures = failures


def to_file_record(remote: RemoteFile) -> FileRecord:
    """Reshape a provider file into a client record with parsed tags."""
    return FileRecord(
        id=remote.id,
        name=remote.name,
        mime_type=remote.mime_type,
        size=remote.size,
        created_time=remote.created_time,
        web_content_link=remote.web_content_link,
        web_view_link=remote.web_view_link,
        thumbnail_link=remote.thumbnail_link,
        tags=parse_tags(remote.properties.get(TAGS_PROPERTY)),
        backend_sync_status="synced",
    )


async def list_files(provider: StorageProvider, trashed: bool) -> list[FileRecord]:
    """List files in the target folder."""
    remote_files = await provider.list_files(trashed)
    return [to_file_record(f) for f in remote_files]


async def search_files(provider: StorageProvider, query: str, trashed: bool) -> list[FileRecord]:
    """List files whose name contains ``query``, ignoring case.

    Raises ValueError for an empty query.
    """
    needle = query.strip().casefold()
    if not needle:
        raise ValueError("Search query is required")
    records = await list_files(provider, trashed)
    return [r for r in records if needle in r.name.casefold()]


def _created_key(record: FileRecord) -> datetime:
    if not record.created_time:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(record.created_time.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


_SORT_KEYS: dict[str, Callable[[FileRecord], object]] = {
    "name": lambda r: r.name.casefold(),
    "size": lambda r: r.size or 0,
    "type": lambda r: r.mime_type,
    "createdTime": _created_key,
}


def sort_files(
    records: list[FileRecord],
    sort_by: SortField = "createdTime",
    order: SortOrder = "asc",
) -> list[FileRecord]:
    """Sort records by a field. Stable in both directions; ties keep their input order."""
    key = _SORT_KEYS.get(sort_by)
    if key is None:
        raise ValueError(f"Unknown sort field: {sort_by!r}")
    return sorted(records, key=key, reverse=order == "desc")  # type: ignore[arg-type]


async def _spool(upload: UploadFile, directory: Path, index: int, max_size: int) -> UploadSource:
    """Copy an incoming upload to a temporary file on disk."""
    name = Path(upload.filename or "upload").name or "upload"
    # Index prefix keeps same-named files in one batch apart.
    path = directory / f"{index:02d}-{name}"
    written = 0
    with path.open("wb") as fh:
        while chunk := await upload.read(_COPY_CHUNK_SIZE):
            written += len(chunk)
            if written > max_size:
                raise UploadTooLargeError(f"File too large: {name}")
            fh.write(chunk)
    mime_type = upload.content_type or "application/octet-stream"
    return UploadSource(name=name, mime_type=mime_type, path=path)


async def upload_files(
    provider: StorageProvider,
    uploads: list[UploadFile],
    temp_root: Path,
    max_size: int,
) -> list[RemoteFile]:
    """Create each upload as a new file in the target folder.

    Every creation is awaited to completion before the temporary copies are
    removed, whether or not the batch succeeded.
    """
    temp_root.mkdir(parents=True, exist_ok=True)
    batch_dir = Path(tempfile.mkdtemp(prefix="batch-", dir=temp_root))
    try:
        sources = [
            await _spool(upload, batch_dir, i, max_size) for i, upload in enumerate(uploads)
        ]
        outcomes = await asyncio.gather(
            *(provider.create_file(source) for source in sources),
            return_exceptions=True,
        )
        created: list[RemoteFile] = []
        failures: list[tuple[str, BaseException]] = []
        for source, outcome in zip(sources, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error("Error uploading %s: %s", source.name, outcome)
                failures.append((source.name, outcome))
            else:
                created.append(outcome)
        if failures:
            raise UploadFailedError(failures)
        return created
    finally:
        _cleanup(batch_dir)


def _cleanup(batch_dir: Path) -> None:
    try:
        shutil.rmtree(batch_dir)
    except OSError as exc:
        logger.error("Error deleting temp upload directory %s: %s", batch_dir, exc)
    else:
        logger.debug("Temp upload directory %s deleted", batch_dir)
