"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Nursery Catalog", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    catalog_api_url: HttpUrl | None = Field(
        default=None,
        alias="CATALOG_API_URL",
        validation_alias=AliasChoices("CATALOG_API_URL", "SUPABASE_REST_URL"),
    )
    catalog_api_key: str | None = Field(default=None, alias="CATALOG_API_KEY")
    catalog_table: str = Field(default="nurserydb", alias="CATALOG_TABLE")

    media_storage_url: HttpUrl | None = Field(
        default=None, alias="MEDIA_STORAGE_URL"
    )
    media_bucket: str = Field(default="images", alias="MEDIA_BUCKET")

    page_size: int = Field(default=20, alias="PAGE_SIZE", ge=1, le=1_000)
    search_debounce_ms: int = Field(
        default=300, alias="SEARCH_DEBOUNCE_MS", ge=0, le=10_000
    )
    request_timeout_seconds: float = Field(
        default=20.0, alias="REQUEST_TIMEOUT_SECONDS", gt=0, le=300
    )
    fallback_on_next_page_error: bool = Field(
        default=False, alias="FALLBACK_ON_NEXT_PAGE_ERROR"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("catalog_api_url", "media_storage_url", "catalog_api_key", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        """Treat blank environment values as missing."""

        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("catalog_table", "media_bucket")
    @classmethod
    def _require_name(cls, value: str) -> str:
        cleaned = value.strip().strip("/")
        if not cleaned:
            raise ValueError("Table and bucket names may not be empty")
        return cleaned

    @property
    def catalog_base_url(self) -> str | None:
        """Return the REST base URL without a trailing slash."""

        if self.catalog_api_url is None:
            return None
        return str(self.catalog_api_url).rstrip("/")

    @property
    def media_base_url(self) -> str | None:
        """Return the storage base URL without a trailing slash."""

        if self.media_storage_url is None:
            return None
        return str(self.media_storage_url).rstrip("/")

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
