"""File gateway schemas. JSON keys are camelCase to match the browser client."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SyncStatus = Literal["synced", "pending"]
SortField = Literal["name", "size", "type", "createdTime"]
SortOrder = Literal["asc", "desc"]


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases, accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileRecord(CamelModel):
    """A provider file reshaped for the client."""

    id: str
    name: str
    mime_type: str
    size: int | None = None
    created_time: str | None = None
    web_content_link: str | None = None
    web_view_link: str | None = None
    thumbnail_link: str | None = None
    tags: list[str] = Field(default_factory=list)
    backend_sync_status: SyncStatus = "synced"


class FileIdRequest(CamelModel):
    """Body of trash, restore and delete requests."""

    file_id: str | None = None


class UpdateTagsRequest(CamelModel):
    """Body of a tag mutation."""

    file_id: str | None = None
    action: str | None = None
    tag: str | None = None


class UpdateTagsResponse(CamelModel):
    """Authoritative tag list after a mutation."""

    message: str
    tags: list[str]
    backend_sync_status: SyncStatus


class UploadedFile(CamelModel):
    """A file created by an upload."""

    id: str
    name: str


class UploadResponse(CamelModel):
    """Result of a batch upload."""

    message: str
    results: list[UploadedFile]


class TagSuggestionsResponse(CamelModel):
    """Tags matching the typed text and whether it would be a new tag."""

    tags: list[str]
    can_create: bool


class MessageResponse(BaseModel):
    """Plain acknowledgement message."""

    message: str
