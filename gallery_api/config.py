"""
Application configuration using Pydantic Settings.
Manages all environment variables and settings.
"""
import os
from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./gallery.db"


class Environment(str, Enum):
    """Application environment modes."""
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


class StorageBackend(str, Enum):
    """Blob store implementations selectable via STORAGE_BACKEND."""
    S3 = "s3"
    LOCAL = "local"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    # Environment
    environment: Environment = Field(
        default=Environment.DEV,
        description="Application environment: DEV or PRODUCTION"
    )

    # Application
    app_name: str = Field(default="Gallery Asset API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    @model_validator(mode="after")
    def set_debug_from_environment(self):
        """Set debug mode based on environment if DEBUG was not set explicitly."""
        if "DEBUG" not in os.environ:
            self.debug = self.environment == Environment.DEV
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    # Database (empty string falls back to the bundled SQLite file)
    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    @field_validator("database_url", mode="before")
    @classmethod
    def coerce_empty_database_url(cls, v: str) -> str:
        if not v or not str(v).strip():
            return DEFAULT_DATABASE_URL
        return v

    # Identity provider tokens (verified here, issued elsewhere)
    jwt_secret_key: str = Field(default="jwt-secret-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: str = Field(
        default="",
        description="Expected 'aud' claim. Empty disables the audience check.",
    )

    # Blob store
    storage_backend: StorageBackend = Field(default=StorageBackend.LOCAL)
    storage_bucket: str = Field(default="photos", description="Single blob namespace for all photos")
    storage_local_root: str = Field(default="./media", description="Root directory for the local backend")
    storage_cache_control: str = Field(default="max-age=3600")
    storage_public_base_url: str = Field(
        default="",
        description="Public URL prefix for stored objects. Empty derives it from the backend.",
    )

    # S3-compatible object storage
    s3_endpoint_url: str = Field(default="", description="S3 API endpoint (empty uses AWS)")
    s3_access_key: str = Field(default="")
    s3_secret_key: str = Field(default="")
    s3_region_name: str = Field(default="us-east-1")

    # Uploads
    max_upload_size_bytes: int = Field(default=10 * 1024 * 1024)
    allowed_content_types: List[str] = Field(
        default=[
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
            "image/heic",
            "image/heif",
        ]
    )

    # Logging
    log_dir: str = Field(default="/var/log/gallery-api", description="NDJSON log directory. Empty disables file logs.")
    instance_ip: str = Field(default="", description="Instance identifier for logs (empty uses hostname)")

    @property
    def public_base_url(self) -> str:
        """Public URL prefix for blobs, derived from the backend when not configured."""
        configured = (self.storage_public_base_url or "").strip()
        if configured:
            return configured.rstrip("/")
        if self.storage_backend == StorageBackend.LOCAL:
            return "/media"
        endpoint = (self.s3_endpoint_url or "").strip().rstrip("/")
        if not endpoint:
            endpoint = f"https://s3.{self.s3_region_name}.amazonaws.com"
        return f"{endpoint}/{self.storage_bucket}"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Using lru_cache to avoid re-reading the environment on every request.
    """
    return Settings()
