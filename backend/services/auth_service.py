"""Auth service: durable credential record and the process-wide token holder."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from backend.exceptions import InternalServerError
from backend.schemas.auth import Credential

if TYPE_CHECKING:
    from pathlib import Path

    from backend.provider.google_oauth import GoogleOAuthClient

logger = logging.getLogger(__name__)


class NotAuthenticatedError(Exception):
    """Raised when an operation needs a credential and none is stored."""


class CredentialStore:
    """JSON file holding the single operator's credential record."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Credential | None:
        """Read the stored credential.

        Returns None when nothing is stored. Raises InternalServerError when
        the file exists but cannot be read or parsed.
        """
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_text(encoding="utf-8")
            return Credential.model_validate_json(raw)
        except (OSError, ValueError) as exc:
            msg = f"Failed to read credential record at {self.path}: {exc}"
            raise InternalServerError(msg) from exc

    def save(self, credential: Credential) -> None:
        """Overwrite the stored credential. Only the latest token set survives."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(credential.model_dump_json(), encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        tmp_path.replace(self.path)
        logger.info("Tokens saved to %s", self.path)

    def clear(self) -> bool:
        """Delete the stored credential. Returns True if a record existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Tokens removed from %s", self.path)
        return True


class AuthSession:
    """Holds the current credential and keeps it fresh.

    One instance lives on ``app.state`` for the life of the process and is
    shared by every request; it is not synchronized.
    """

    def __init__(self, store: CredentialStore, oauth: GoogleOAuthClient) -> None:
        self.store = store
        self.oauth = oauth
        self._credential: Credential | None = None

    def load(self) -> None:
        """Load tokens from disk at startup if available."""
        try:
            self._credential = self.store.load()
        except InternalServerError as exc:
            logger.warning("Ignoring unreadable credential record: %s", exc)
            self._credential = None
            return
        if self._credential is None:
            logger.info("No tokens found. Please authenticate via /auth.")
        else:
            logger.info("Tokens loaded from %s", self.store.path)

    def is_authenticated(self) -> bool:
        """Report whether a readable credential record exists. Never raises."""
        try:
            return self.store.load() is not None
        except InternalServerError:
            return False

    def _current(self) -> Credential:
        if self._credential is None:
            try:
                self._credential = self.store.load()
            except InternalServerError as exc:
                raise NotAuthenticatedError(str(exc)) from exc
        if self._credential is None:
            msg = "No stored credential"
            raise NotAuthenticatedError(msg)
        return self._credential

    async def complete(self, code: str) -> Credential:
        """Exchange an authorization code and persist the resulting tokens."""
        credential = await self.oauth.exchange_code(code)
        self._credential = credential
        self.store.save(credential)
        return credential

    async def access_token(self) -> str:
        """Return the current access token, refreshing it first if expired."""
        credential = self._current()
        if credential.is_expired() and credential.refresh_token:
            return await self.refresh()
        return credential.access_token

    async def refresh(self) -> str:
        """Exchange the refresh token for a new access token."""
        credential = self._current()
        if not credential.refresh_token:
            msg = "Stored credential has no refresh token"
            raise NotAuthenticatedError(msg)
        issued = await self.oauth.refresh(credential.refresh_token)
        self._on_tokens(issued)
        logger.info("Access token refreshed")
        return issued.access_token

    def _on_tokens(self, issued: Credential) -> None:
        """Apply a refresh response; persist when a new refresh token was issued."""
        current = self._current()
        if issued.refresh_token:
            self._credential = issued
            self.store.save(issued)
            return
        self._credential = issued.model_copy(update={"refresh_token": current.refresh_token})

    async def fetch_profile_name(self) -> str:
        """Return the display name of the authenticated principal."""
        token = await self.access_token()
        profile = await self.oauth.fetch_profile(token)
        return str(profile.get("name", ""))

    def forget(self) -> bool:
        """Drop the in-memory credential and delete the stored record."""
        self._credential = None
        return self.store.clear()
