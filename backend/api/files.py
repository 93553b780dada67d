"""File gateway endpoints: listing, search, thumbnails, upload, trash and tags."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from backend.api.deps import (
    get_provider,
    get_settings,
    get_tag_index,
    require_credentials,
)
from backend.config import Settings
from backend.provider.base import StorageProvider
from backend.provider.google_drive import DriveAPIError
from backend.provider.google_oauth import OAuthTokenError
from backend.schemas.file import (
    FileIdRequest,
    FileRecord,
    MessageResponse,
    SortField,
    SortOrder,
    TagSuggestionsResponse,
    UpdateTagsRequest,
    UpdateTagsResponse,
    UploadedFile,
    UploadResponse,
)
from backend.services.auth_service import NotAuthenticatedError
from backend.services.file_service import (
    UploadFailedError,
    UploadTooLargeError,
    list_files,
    search_files,
    sort_files,
    upload_files,
)
from backend.services.tag_service import TagIndex, normalize_tag, update_file_tags

logger = logging.getLogger(__name__)

# Failures of the remote call itself, as opposed to bad client input.
PROVIDER_ERRORS = (DriveAPIError, OAuthTokenError, NotAuthenticatedError)

router = APIRouter(tags=["files"], dependencies=[Depends(require_credentials)])


def _require_file_id(file_id: str | None) -> str:
    if file_id is None or not file_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File ID is required")
    return file_id.strip()


@router.get("/files", response_model=list[FileRecord])
async def list_files_endpoint(
    provider: Annotated[StorageProvider, Depends(get_provider)],
    tag_index: Annotated[TagIndex, Depends(get_tag_index)],
    show_trashed: Annotated[bool, Query(alias="showTrashed")] = False,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "createdTime",
    order: Annotated[SortOrder, Query()] = "asc",
) -> list[FileRecord]:
    """List files in the managed folder."""
    try:
        records = await list_files(provider, show_trashed)
    except PROVIDER_ERRORS as exc:
        logger.error("Error fetching files: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Error fetching files"
        ) from exc
    tag_index.replace(records)
    return sort_files(records, sort_by, order)


@router.get("/search", response_model=list[FileRecord])
async def search_files_endpoint(
    provider: Annotated[StorageProvider, Depends(get_provider)],
    tag_index: Annotated[TagIndex, Depends(get_tag_index)],
    query: Annotated[str, Query()] = "",
    show_trashed: Annotated[bool, Query(alias="showTrashed")] = False,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "createdTime",
    order: Annotated[SortOrder, Query()] = "asc",
) -> list[FileRecord]:
    """List files whose name contains the query, ignoring case."""
    if not query.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required"
        )
    try:
        records = await search_files(provider, query, show_trashed)
    except PROVIDER_ERRORS as exc:
        logger.error("Error searching files for %r: %s", query, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Error searching files"
        ) from exc
    tag_index.replace(records)
    return sort_files(records, sort_by, order)


@router.get("/tags", response_model=TagSuggestionsResponse)
async def tag_suggestions_endpoint(
    tag_index: Annotated[TagIndex, Depends(get_tag_index)],
    q: Annotated[str, Query(max_length=100)] = "",
) -> TagSuggestionsResponse:
    """Suggest known tags matching the typed text."""
    tags, can_create = tag_index.suggest(q)
    return TagSuggestionsResponse(tags=tags, can_create=can_create)


@router.get("/thumbnail/{file_id}")
async def thumbnail_endpoint(
    file_id: str,
    provider: Annotated[StorageProvider, Depends(get_provider)],
) -> Response:
    """Proxy a file's thumbnail image."""
    try:
        link = await provider.get_thumbnail_link(file_id)
        if link is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Thumbnail not found"
            )
        thumbnail = await provider.fetch_thumbnail(link)
    except PROVIDER_ERRORS as exc:
        logger.error("Error fetching thumbnail for %s: %s", file_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching thumbnail"
        ) from exc
    return Response(content=thumbnail.content, media_type=thumbnail.content_type)


@router.post("/upload", response_model=UploadResponse)
async def upload_endpoint(
    provider: Annotated[StorageProvider, Depends(get_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
    files: Annotated[list[UploadFile] | None, File()] = None,
) -> UploadResponse:
    """Upload up to ``max_upload_files`` files into the managed folder."""
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files provided")
    if len(files) > settings.max_upload_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.max_upload_files} files can be uploaded at once",
        )
    try:
        created = await upload_files(
            provider, files, settings.upload_temp_dir, settings.max_upload_size
        )
    except UploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)
        ) from exc
    except UploadFailedError as exc:
        logger.error("Error uploading files: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error uploading files."
        ) from exc
    logger.info("Uploaded %d file(s)", len(created))
    return UploadResponse(
        message="Files uploaded successfully!",
        results=[UploadedFile(id=f.id, name=f.name) for f in created],
    )


@router.post("/trash-file", response_model=MessageResponse)
async def trash_file_endpoint(
    body: FileIdRequest,
    provider: Annotated[StorageProvider, Depends(get_provider)],
) -> MessageResponse:
    """Move a file to the trash."""
    file_id = _require_file_id(body.file_id)
    try:
        await provider.set_trashed(file_id, True)
    except PROVIDER_ERRORS as exc:
        logger.error("Error moving file %s to trash: %s", file_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error moving file to trash",
        ) from exc
    return MessageResponse(message="File moved to trash")


@router.post("/restore-file", response_model=MessageResponse)
async def restore_file_endpoint(
    body: FileIdRequest,
    provider: Annotated[StorageProvider, Depends(get_provider)],
) -> MessageResponse:
    """Restore a file from the trash."""
    file_id = _require_file_id(body.file_id)
    try:
        await provider.set_trashed(file_id, False)
    except PROVIDER_ERRORS as exc:
        logger.error("Error restoring file %s: %s", file_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error restoring file"
        ) from exc
    return MessageResponse(message="File restored")


@router.post("/delete-file", response_model=MessageResponse)
async def delete_file_endpoint(
    body: FileIdRequest,
    provider: Annotated[StorageProvider, Depends(get_provider)],
) -> MessageResponse:
    """Permanently delete a file. This cannot be undone."""
    file_id = _require_file_id(body.file_id)
    try:
        await provider.delete_file(file_id)
    except PROVIDER_ERRORS as exc:
        logger.error("Error deleting file %s: %s", file_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error deleting file"
        ) from exc
    logger.info("File %s permanently deleted", file_id)
    return MessageResponse(message="File permanently deleted")


@router.post("/update-tags", response_model=UpdateTagsResponse)
async def update_tags_endpoint(
    body: UpdateTagsRequest,
    provider: Annotated[StorageProvider, Depends(get_provider)],
    tag_index: Annotated[TagIndex, Depends(get_tag_index)],
) -> UpdateTagsResponse:
    """Add or remove a tag and return the provider's authoritative tag list."""
    file_id = _require_file_id(body.file_id)
    if body.action not in ("add", "remove"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Action must be 'add' or 'remove'",
        )
    try:
        tag = normalize_tag(body.tag)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        result = await update_file_tags(provider, file_id, body.action, tag)
    except PROVIDER_ERRORS as exc:
        logger.error("Error updating tags on file %s: %s", file_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error updating tags"
        ) from exc
    if result.changed and body.action == "add":
        tag_index.add(tag)
    return UpdateTagsResponse(
        message=result.message,
        tags=result.tags,
        backend_sync_status=result.sync_status,
    )
