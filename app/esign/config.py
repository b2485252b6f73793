"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./esign.db"

    # Blob storage for original and signed PDFs
    storage_backend: Literal["local", "s3"] = "local"
    local_storage_dir: str = "data/blobs"
    public_base_url: str = "http://localhost:8000/files"
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    # Public URL prefix for S3 objects (CDN); defaults to the bucket endpoint
    s3_public_base_url: str | None = None

    # Fetching original PDFs
    fetch_timeout_seconds: float = 30.0

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024

    # TrueType font for signer names and dates; Helvetica (WinAnsi only) if unset
    annotation_font_path: str | None = None

    # Signing links handed out to recipients
    client_url: str = "http://localhost:5173"

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Debug flags
    sql_debug: bool = False
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the backend directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
