"""Tag service: tag parsing, read-modify-write updates and suggestions.

Tags live in a single provider-side custom property (``tags``) as a
comma-joined string. Updates are read-modify-write and unguarded: two
concurrent edits of the same file can race and one of them can be lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from backend.provider.base import StorageProvider
    from backend.schemas.file import FileRecord, SyncStatus

logger = logging.getLogger(__name__)

TAGS_PROPERTY = "tags"
TAG_SEPARATOR = ","
MAX_TAG_LENGTH = 100


def parse_tags(raw: str | None) -> list[str]:
    """Split a comma-joined property value into de-duplicated, trimmed tags."""
    if not raw:
        return []
    tags: list[str] = []
    for part in raw.split(TAG_SEPARATOR):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def join_tags(tags: Iterable[str]) -> str | None:
    """Join tags for storage. An empty set becomes None so the property is removed."""
    joined = TAG_SEPARATOR.join(tags)
    return joined or None


def normalize_tag(tag: str | None) -> str:
    """Validate a user-supplied tag. Raises ValueError with a client-safe message."""
    value = (tag or "").strip()
    if not value:
        raise ValueError("Tag is required")
    if TAG_SEPARATOR in value:
        raise ValueError("Tag must not contain a comma")
    if len(value) > MAX_TAG_LENGTH:
        raise ValueError(f"Tag must be at most {MAX_TAG_LENGTH} characters")
    return value


def apply_tag_change(current: list[str], action: str, tag: str) -> list[str]:
    """Return the tag list after adding or removing ``tag``.

    Adding a present tag or removing an absent one returns an equal list.
    """
    if action == "add":
        return current if tag in current else [*current, tag]
    if action == "remove":
        return [t for t in current if t != tag]
    raise ValueError(f"Unknown tag action: {action!r}")


@dataclass
class TagUpdateResult:
    """Outcome of a tag mutation."""

    message: str
    tags: list[str]
    sync_status: SyncStatus
    changed: bool


async def update_file_tags(
    provider: StorageProvider, file_id: str, action: str, tag: str
) -> TagUpdateResult:
    """Add or remove a tag on a file and return the provider's authoritative tags.

    The property is cleared entirely when the last tag is removed.
    """
    properties = await provider.get_properties(file_id)
    current = parse_tags(properties.get(TAGS_PROPERTY))
    updated = apply_tag_change(current, action, tag)

    if updated == current:
        logger.debug("Tag %s on file %s is a no-op (%s)", tag, file_id, action)
        return TagUpdateResult(
            message="No changes", tags=current, sync_status="synced", changed=False
        )

    await provider.update_properties(file_id, {TAGS_PROPERTY: join_tags(updated)})

    reread = parse_tags((await provider.get_properties(file_id)).get(TAGS_PROPERTY))
    sync_status: SyncStatus = "synced" if reread == updated else "pending"
    if sync_status != "synced":
        logger.warning(
            "Tags for file %s not yet acknowledged: expected %s, provider has %s",
            file_id,
            updated,
            reread,
        )
    message = "Tag added" if action == "add" else "Tag removed"
    return TagUpdateResult(message=message, tags=reread, sync_status=sync_status, changed=True)


def collect_tags(records: Iterable[FileRecord]) -> list[str]:
    """Return the sorted set of tags across records."""
    seen: set[str] = set()
    for record in records:
        seen.update(record.tags)
    return sorted(seen, key=str.casefold)


def suggest_tags(all_tags: Iterable[str], text: str) -> tuple[list[str], bool]:
    """Filter tags by case-insensitive substring.

    Returns the matching tags and whether ``text`` would create a new tag,
    i.e. it is non-empty and equals no existing tag case-insensitively.
    """
    needle = text.strip().casefold()
    tags = list(all_tags)
    matches = [t for t in tags if needle in t.casefold()]
    can_create = bool(needle) and all(t.casefold() != needle for t in tags)
    return matches, can_create


class TagIndex:
    """Global tag list recomputed from the most recent listing."""

    def __init__(self) -> None:
        self._tags: list[str] = []

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    def replace(self, records: Iterable[FileRecord]) -> None:
        """Rebuild the list from a fresh listing."""
        self._tags = collect_tags(records)

    def add(self, tag: str) -> None:
        """Record a tag that was just added to a file."""
        if tag not in self._tags:
            self._tags = sorted([*self._tags, tag], key=str.casefold)

    def suggest(self, text: str) -> tuple[list[str], bool]:
        return suggest_tags(self._tags, text)
