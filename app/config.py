"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Upper bound on listing pages fetched per pagination run.
MAX_LISTING_PAGES = 50


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Pahe Links", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=7860, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    catalog_base_url: HttpUrl = Field(
        default="https://animepahe.ru", alias="CATALOG_BASE_URL"
    )
    download_host: str = Field(default="pahe.win", alias="DOWNLOAD_HOST")
    default_search_query: str = Field(
        default="Naruto", alias="DEFAULT_SEARCH_QUERY"
    )

    max_listing_pages: int = Field(
        default=MAX_LISTING_PAGES,
        alias="MAX_LISTING_PAGES",
        ge=1,
        le=MAX_LISTING_PAGES,
    )
    player_settle_seconds: float = Field(
        default=5.0, alias="PLAYER_SETTLE_SECONDS", ge=0, le=60
    )
    navigation_timeout_seconds: float = Field(
        default=30.0, alias="NAVIGATION_TIMEOUT_SECONDS", gt=0, le=300
    )
    listing_transport: Literal["browser", "http"] = Field(
        default="browser", alias="LISTING_TRANSPORT"
    )
    max_sessions: int = Field(default=4, alias="MAX_SESSIONS", ge=1, le=32)
    headless: bool = Field(default=True, alias="HEADLESS")
    user_agent: str | None = Field(default=None, alias="USER_AGENT")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        text = str(value or "INFO").strip().upper()
        return text or "INFO"

    @field_validator("download_host", mode="before")
    @classmethod
    def _normalise_download_host(cls, value: object) -> str:
        """Accept bare hosts as well as URLs for the download mirror."""

        text = str(value or "").strip().lower()
        if "://" in text:
            text = urlparse(text).hostname or ""
        text = text.strip("/.")
        if not text:
            raise ValueError("DOWNLOAD_HOST must not be empty")
        return text

    @property
    def base_url(self) -> str:
        """Return the catalog origin without a trailing slash."""

        return str(self.catalog_base_url).rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
