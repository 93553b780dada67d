"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Drive Tags application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Google OAuth client
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:3000/callback"

    # Drive folder that holds the managed files
    drive_folder_id: str = ""

    # Paths
    token_path: Path = Path("tokens.json")
    upload_temp_dir: Path = Path("./uploads-temp")
    frontend_dir: Path = Path("./frontend")

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)

    # CORS
    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=list)

    # Provider calls
    list_page_size: int = Field(default=100, ge=1, le=1000)
    provider_timeout_seconds: float = Field(default=15.0, gt=0)

    # Uploads
    max_upload_files: int = Field(default=10, ge=1, le=10)
    max_upload_size: int = Field(default=100 * 1024 * 1024, ge=1)

    # Response hardening
    security_headers_enabled: bool = True

    def validate_runtime_security(self) -> None:
        """Validate settings required to talk to the provider in production."""
        if self.debug:
            return

        violations: list[str] = []
        if not self.google_client_id or not self.google_client_secret:
            violations.append("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be configured")
        if not self.google_redirect_uri:
            violations.append("GOOGLE_REDIRECT_URI must be configured")
        if not self.drive_folder_id:
            violations.append("DRIVE_FOLDER_ID must be configured")

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Incomplete production configuration: {joined}")
