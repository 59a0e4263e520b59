"""Public search, detail and episode operations."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from ..config import Settings
from ..errors import InvalidRequestError, NotFoundError, ResolutionError, UpstreamFailure
from ..models import EpisodeResolution, RankedEntry, TitleDetail
from ..utils import is_valid_catalog_id, parse_episode_number
from .browser import Renderer, RenderingSession
from .catalog import CatalogFetcher
from .detail import DetailExtractor, ListingFactory
from .playback import PlaybackLinkResolver
from .ranking import rank

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_FAILURE = "Failed to fetch search results."
DETAIL_FAILURE = "Failed to fetch anime info."
EPISODE_FAILURE = "Failed to resolve episode links."
_NOT_FOUND_TITLE_MARKERS = ("404", "Not Found")


class ResolutionOrchestrator:
    """Runs each operation inside its own rendering session."""

    def __init__(
        self,
        settings: Settings,
        renderer: Renderer,
        listing_factory: ListingFactory,
    ) -> None:
        self._settings = settings
        self._renderer = renderer
        self._listing_factory = listing_factory
        base_url = settings.base_url
        self._base_url = base_url
        self._catalog = CatalogFetcher(base_url)
        self._detail = DetailExtractor(
            base_url, listing_factory, max_pages=settings.max_listing_pages
        )
        self._playback = PlaybackLinkResolver(
            base_url,
            download_host=settings.download_host,
            settle_seconds=settings.player_settle_seconds,
            max_pages=settings.max_listing_pages,
        )

    async def search(self, query: str | None) -> list[RankedEntry]:
        normalized = (query or "").strip() or self._settings.default_search_query

        async def _run(session: RenderingSession) -> list[RankedEntry]:
            page = await session.new_page()
            entries = await self._catalog.fetch(page)
            return rank(normalized, entries)

        return await self._run_in_session("search", _run, SEARCH_FAILURE)

    async def detail(self, detail_url: str | None) -> TitleDetail:
        url = self._detail.validate_url(detail_url)

        async def _run(session: RenderingSession) -> TitleDetail:
            page = await session.new_page()
            return await self._detail.extract(page, url)

        return await self._run_in_session("detail", _run, DETAIL_FAILURE)

    async def resolve_episode(
        self, catalog_id: str | None, episode: Any
    ) -> EpisodeResolution:
        catalog_id = (catalog_id or "").strip()
        number = parse_episode_number(episode)
        if not is_valid_catalog_id(catalog_id) or number is None:
            raise InvalidRequestError(
                "id and episode query parameters are required"
            )

        async def _run(session: RenderingSession) -> EpisodeResolution:
            page = await session.new_page()
            await page.navigate(f"{self._base_url}/anime/{catalog_id}")
            title = await page.title()
            if any(marker in title for marker in _NOT_FOUND_TITLE_MARKERS):
                raise NotFoundError("Anime not found")
            listing = self._listing_factory(page)
            return await self._playback.resolve(session, listing, catalog_id, number)

        return await self._run_in_session("episode", _run, EPISODE_FAILURE)

    async def _run_in_session(
        self,
        operation: str,
        work: Callable[[RenderingSession], Awaitable[T]],
        failure_message: str,
    ) -> T:
        try:
            async with self._renderer.session() as session:
                return await work(session)
        except (InvalidRequestError, NotFoundError):
            raise
        except ResolutionError as exc:
            logger.warning("%s operation failed: %s", operation, exc)
            raise UpstreamFailure(failure_message) from exc
        except Exception as exc:
            logger.exception("Unexpected %s failure", operation)
            raise UpstreamFailure(failure_message) from exc
