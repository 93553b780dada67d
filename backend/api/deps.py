"""Shared API dependencies: settings, auth session, provider, tag index."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from backend.config import Settings
from backend.provider.base import StorageProvider
from backend.provider.oauth_state import OAuthStateStore
from backend.services.auth_service import AuthSession
from backend.services.tag_service import TagIndex


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_auth_session(request: Request) -> AuthSession:
    """Get the process-wide credential holder."""
    auth: AuthSession = request.app.state.auth_session
    return auth


def get_oauth_state(request: Request) -> OAuthStateStore:
    """Get the pending consent-flow state store."""
    store: OAuthStateStore = request.app.state.oauth_state
    return store


def get_provider(request: Request) -> StorageProvider:
    """Get the storage provider."""
    provider: StorageProvider = request.app.state.provider
    return provider


def get_tag_index(request: Request) -> TagIndex:
    """Get the global tag list."""
    index: TagIndex = request.app.state.tag_index
    return index


async def require_credentials(
    auth: Annotated[AuthSession, Depends(get_auth_session)],
) -> AuthSession:
    """Require a stored credential. Raises 401 if not authenticated."""
    if not auth.is_authenticated():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return auth
