"""Google OAuth 2.0 client: consent URL, code exchange, refresh and profile lookup."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import httpx

from backend.schemas.auth import Credential

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

SCOPES = (
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
)


class OAuthTokenError(Exception):
    """Raised when a Google OAuth token or profile request fails."""


def _credential_from_token_response(token_data: dict[str, Any]) -> Credential:
    """Build a credential from a token endpoint JSON body."""
    access_token = token_data.get("access_token")
    if not access_token:
        msg = "Token response missing access_token"
        raise OAuthTokenError(msg)
    expiry: datetime | None = None
    expires_in = token_data.get("expires_in")
    if isinstance(expires_in, (int, float)):
        expiry = datetime.now(UTC) + timedelta(seconds=expires_in)
    return Credential(
        access_token=access_token,
        refresh_token=token_data.get("refresh_token") or None,
        expiry=expiry,
        token_type=token_data.get("token_type", "Bearer"),
        scope=token_data.get("scope", ""),
    )


class GoogleOAuthClient:
    """Authorization-code flow against Google's OAuth endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    def authorization_url(self, state: str) -> str:
        """Build the consent URL requesting offline access."""
        params = urlencode(
            {
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
                "response_type": "code",
                "access_type": "offline",
                "prompt": "consent",
                "scope": " ".join(SCOPES),
                "state": state,
            }
        )
        return f"{AUTHORIZE_URL}?{params}"

    async def exchange_code(self, code: str) -> Credential:
        """Exchange an authorization code for a token set.

        Raises OAuthTokenError when the code is invalid, expired or the
        request cannot be completed.
        """
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._redirect_uri,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
            },
            "Token exchange",
        )

    async def refresh(self, refresh_token: str) -> Credential:
        """Obtain a new access token. The returned refresh token is None unless rotated."""
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
            },
            "Token refresh",
        )

    async def _token_request(self, data: dict[str, str], operation: str) -> Credential:
        async with self._client() as client:
            try:
                resp = await client.post(TOKEN_URL, data=data)
            except httpx.HTTPError as exc:
                msg = f"{operation} HTTP error: {exc}"
                raise OAuthTokenError(msg) from exc
        if resp.status_code != 200:
            msg = f"{operation} failed: {resp.status_code}"
            raise OAuthTokenError(msg)
        try:
            token_data = resp.json()
        except ValueError as exc:
            msg = f"{operation} returned invalid JSON"
            raise OAuthTokenError(msg) from exc
        return _credential_from_token_response(token_data)

    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        """Fetch the userinfo document for the token's principal."""
        async with self._client() as client:
            try:
                resp = await client.get(
                    USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.HTTPError as exc:
                msg = f"Profile fetch HTTP error: {exc}"
                raise OAuthTokenError(msg) from exc
        if resp.status_code != 200:
            msg = f"Profile fetch failed: {resp.status_code}"
            raise OAuthTokenError(msg)
        profile: dict[str, Any] = resp.json()
        return profile
