"""Sources for the catalog's paged release listing endpoint."""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from .browser import DocumentPage

logger = logging.getLogger(__name__)

LISTING_PATH = "/api"


def listing_params(catalog_id: str, page: int, sort: str | None = None) -> dict[str, str]:
    params = {"m": "release", "id": catalog_id, "page": str(page)}
    if sort:
        params["sort"] = sort
    return params


class ListingSource(Protocol):
    """Fetches one page of release records for a catalog entry.

    Implementations return ``None`` when the page could not be retrieved
    (non-success status, transport error or undecodable body).
    """

    async def fetch_page(
        self, catalog_id: str, page: int, *, sort: str | None = None
    ) -> dict[str, Any] | None:
        ...


class PageListingSource:
    """Issues listing requests from inside a loaded catalog page.

    Requests share the page's cookies, which the site's bot protection
    expects.
    """

    def __init__(self, page: DocumentPage, base_url: str) -> None:
        self._page = page
        self._base_url = base_url.rstrip("/")

    async def fetch_page(
        self, catalog_id: str, page: int, *, sort: str | None = None
    ) -> dict[str, Any] | None:
        query = urlencode(listing_params(catalog_id, page, sort))
        url = f"{self._base_url}{LISTING_PATH}?{query}"
        result = await self._page.fetch_json(url)
        if not result.ok:
            logger.info(
                "Listing page %s for %s returned status %s", page, catalog_id, result.status
            )
            return None
        if not isinstance(result.payload, dict):
            return None
        return result.payload


class HttpListingSource:
    """Fetches listing pages directly with ``httpx``."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._client = http_client

    async def fetch_page(
        self, catalog_id: str, page: int, *, sort: str | None = None
    ) -> dict[str, Any] | None:
        try:
            response = await self._client.get(
                LISTING_PATH, params=listing_params(catalog_id, page, sort)
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.info(
                "Listing page %s for %s returned status %s",
                page,
                catalog_id,
                exc.response.status_code,
            )
            return None
        except httpx.HTTPError as exc:
            logger.warning(
                "Listing page %s for %s could not be fetched: %s", page, catalog_id, exc
            )
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Listing page %s for %s was not valid JSON", page, catalog_id)
            return None
        if not isinstance(payload, dict):
            return None
        return payload
