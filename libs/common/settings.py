"""Application settings for the Peerhelp forum service."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from PEERHELP_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PEERHELP_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core application settings
    app_env: Literal["development", "staging", "production", "test"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # CORS - use string to avoid JSON parsing issues
    cors_origins_str: str = Field(
        default="http://localhost:3000,https://localhost:3000",
        validation_alias="PEERHELP_CORS_ORIGINS",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from string."""
        if not self.cors_origins_str.strip():
            return ["http://localhost:3000", "https://localhost:3000"]
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # Firebase / Firestore
    firebase_admin_sdk_json: str | None = None
    firebase_admin_sdk_path: str | None = None
    firebase_project_id: str | None = None
    firestore_database: str = "(default)"

    # Image hosting
    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    upload_folder: str = "messages"
    upload_max_bytes: int = 8 * 1024 * 1024
    max_request_bytes: int = 10 * 1024 * 1024

    # Forum rules
    min_commented_posts_to_post: int = Field(default=3, ge=0)
    inbox_limit: int = Field(default=50, ge=1)
    stream_keepalive_seconds: float = Field(default=15.0, gt=0)
    avatar_placeholder_url: str = "https://ui-avatars.com/api/"

    # Payment analytics
    analytics_default_limit: int = Field(default=20, ge=1)
    trends_window_days: int = Field(default=30, ge=1)

    @field_validator("upload_max_bytes")
    @classmethod
    def validate_upload_max_bytes(cls, v: int) -> int:
        """Uploads need a positive size ceiling."""
        if v <= 0:
            raise ValueError("Upload size limit must be positive")
        return v

    @model_validator(mode="after")
    def validate_request_guard(self) -> "Settings":
        """The request body guard must leave room for a maximum-size upload."""
        if self.max_request_bytes < self.upload_max_bytes:
            raise ValueError("max_request_bytes must be at least upload_max_bytes")
        return self

    @property
    def cloudinary_configured(self) -> bool:
        """True when all three Cloudinary credentials are present."""
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
