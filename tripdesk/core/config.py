from __future__ import annotations

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    frontend_origins: str = Field(
        default="http://localhost:5173",
        validation_alias="FRONTEND_ORIGINS",
    )

    platform_url: str = Field(default="http://localhost:54321", validation_alias="PLATFORM_URL")
    platform_anon_key: str = Field(default="", validation_alias="PLATFORM_ANON_KEY")
    platform_request_timeout_seconds: float = Field(
        default=30.0,
        validation_alias="PLATFORM_REQUEST_TIMEOUT_SECONDS",
    )

    attachments_bucket: str = Field(default="travel-attachments", validation_alias="ATTACHMENTS_BUCKET")
    attachments_table: str = Field(
        default="travel_request_attachments",
        validation_alias="ATTACHMENTS_TABLE",
    )
    attachment_max_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        validation_alias="ATTACHMENT_MAX_SIZE_BYTES",
    )
    signed_url_ttl_seconds: int = Field(default=60 * 60 * 24, validation_alias="SIGNED_URL_TTL_SECONDS")
    image_max_width: int = Field(default=1200, validation_alias="IMAGE_MAX_WIDTH")
    image_jpeg_quality: int = Field(default=60, ge=1, le=95, validation_alias="IMAGE_JPEG_QUALITY")
    upload_chunk_size_bytes: int = Field(default=64 * 1024, validation_alias="UPLOAD_CHUNK_SIZE_BYTES")
    workspace_idle_timeout_seconds: float = Field(
        default=2 * 60 * 60,
        gt=0,
        validation_alias="WORKSPACE_IDLE_TIMEOUT_SECONDS",
    )

    sign_in_timeout_seconds: float = Field(default=25.0, validation_alias="SIGN_IN_TIMEOUT_SECONDS")
    sign_in_max_attempts: int = Field(default=3, ge=1, validation_alias="SIGN_IN_MAX_ATTEMPTS")
    sign_in_backoff_seconds: float = Field(default=0.6, validation_alias="SIGN_IN_BACKOFF_SECONDS")
    notify_timeout_seconds: float = Field(default=15.0, validation_alias="NOTIFY_TIMEOUT_SECONDS")

    policy_extraction_function: str = Field(
        default="extract-policy-text",
        validation_alias="POLICY_EXTRACTION_FUNCTION",
    )
    policy_ocr_max_pages: int = Field(default=10, ge=1, validation_alias="POLICY_OCR_MAX_PAGES")

    @computed_field
    @property
    def frontend_origin_list(self) -> list[str]:
        return _split_csv(self.frontend_origins)

    @computed_field
    @property
    def platform_base_url(self) -> str:
        return self.platform_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
