"""Authentication-related schemas."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field

# Refresh slightly before the provider's deadline so requests in flight do not expire.
EXPIRY_SKEW = timedelta(seconds=60)


class Credential(BaseModel):
    """OAuth token set for the single operator account."""

    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    expiry: datetime | None = None
    token_type: str = "Bearer"
    scope: str = ""

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return True when the access token is past (or about to pass) its expiry."""
        if self.expiry is None:
            return False
        current = now or datetime.now(UTC)
        return current + EXPIRY_SKEW >= self.expiry


class StatusResponse(BaseModel):
    """Authentication status."""

    authenticated: bool


class ProfileResponse(BaseModel):
    """Display name of the authenticated principal."""

    name: str
