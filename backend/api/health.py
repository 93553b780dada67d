"""Health check endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.api.deps import get_auth_session
from backend.services.auth_service import AuthSession

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    authenticated: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(
    auth: Annotated[AuthSession, Depends(get_auth_session)],
) -> HealthResponse:
    """Health check endpoint for monitoring. Does not call the provider."""
    return HealthResponse(
        status="ok",
        version="0.1.0",
        authenticated=auth.is_authenticated(),
    )
