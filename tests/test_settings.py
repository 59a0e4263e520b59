"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import MAX_LISTING_PAGES, Settings


def test_defaults_match_public_site() -> None:
    settings = Settings(_env_file=None)

    assert settings.base_url == "https://animepahe.ru"
    assert settings.server_port == 7860
    assert settings.max_listing_pages == MAX_LISTING_PAGES == 50
    assert settings.download_host == "pahe.win"
    assert settings.listing_transport == "browser"


def test_listing_page_ceiling_cannot_exceed_fifty() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, MAX_LISTING_PAGES=51)


def test_listing_page_ceiling_can_be_lowered() -> None:
    settings = Settings(_env_file=None, MAX_LISTING_PAGES=5)

    assert settings.max_listing_pages == 5


def test_download_host_accepts_urls() -> None:
    settings = Settings(_env_file=None, DOWNLOAD_HOST="https://Pahe.Win/")

    assert settings.download_host == "pahe.win"


def test_blank_download_host_is_rejected() -> None:
    with pytest.raises(ValueError, match="DOWNLOAD_HOST"):
        Settings(_env_file=None, DOWNLOAD_HOST="  ")


def test_base_url_drops_trailing_slash() -> None:
    settings = Settings(_env_file=None, CATALOG_BASE_URL="https://mirror.example/")

    assert settings.base_url == "https://mirror.example"


def test_log_level_is_upper_cased() -> None:
    assert Settings(_env_file=None, LOG_LEVEL="debug").log_level == "DEBUG"


def test_unknown_listing_transport_is_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, LISTING_TRANSPORT="carrier-pigeon")
