"""Authentication endpoints: Google consent flow, status and profile."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from backend.api.deps import get_auth_session, get_oauth_state, require_credentials
from backend.exceptions import InternalServerError
from backend.provider.google_oauth import OAuthTokenError
from backend.provider.oauth_state import OAuthStateStore
from backend.schemas.auth import ProfileResponse, StatusResponse
from backend.schemas.file import MessageResponse
from backend.services.auth_service import AuthSession, NotAuthenticatedError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/auth")
async def begin_auth(
    auth: Annotated[AuthSession, Depends(get_auth_session)],
    state_store: Annotated[OAuthStateStore, Depends(get_oauth_state)],
) -> RedirectResponse:
    """Redirect to the Google consent page."""
    state = state_store.issue()
    return RedirectResponse(url=auth.oauth.authorization_url(state))


@router.get("/callback")
async def auth_callback(
    auth: Annotated[AuthSession, Depends(get_auth_session)],
    state_store: Annotated[OAuthStateStore, Depends(get_oauth_state)],
    code: Annotated[str, Query()] = "",
    state: Annotated[str, Query()] = "",
) -> RedirectResponse:
    """Exchange the authorization code for tokens, persist them, return to the app."""
    if not code or not state_store.consume(state):
        logger.warning("Rejected OAuth callback: missing code or invalid state")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error during authentication",
        )
    try:
        await auth.complete(code)
    except OAuthTokenError as exc:
        logger.error("Error during authentication: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error during authentication",
        ) from exc
    except OSError as exc:
        raise InternalServerError(f"Failed to persist tokens: {exc}") from exc
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/status", response_model=StatusResponse)
async def auth_status(
    auth: Annotated[AuthSession, Depends(get_auth_session)],
) -> StatusResponse:
    """Report whether a credential record is stored."""
    return StatusResponse(authenticated=auth.is_authenticated())


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    auth: Annotated[AuthSession, Depends(get_auth_session)],
) -> ProfileResponse:
    """Return the display name of the authenticated account."""
    try:
        name = await auth.fetch_profile_name()
    except (OAuthTokenError, NotAuthenticatedError) as exc:
        logger.error("Error fetching profile information: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unable to fetch profile information",
        ) from exc
    return ProfileResponse(name=name)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    auth: Annotated[AuthSession, Depends(require_credentials)],
) -> MessageResponse:
    """Forget the stored credential."""
    auth.forget()
    return MessageResponse(message="Logged out")
