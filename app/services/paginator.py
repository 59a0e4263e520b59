"""Bounded pagination over the release listing endpoint."""

from __future__ import annotations

import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, AsyncIterator

from ..config import MAX_LISTING_PAGES
from ..errors import UpstreamFailure
from ..models import EpisodeRecord
from ..utils import parse_episode_number
from .listing import ListingSource

logger = logging.getLogger(__name__)

SEARCH_SORT = "episode_asc"
_EPISODE_FIELDS = ("episode", "number")


@dataclass(frozen=True, slots=True)
class SearchEpisode:
    """Stop at the first record whose episode equals ``target``."""

    target: float


@dataclass(frozen=True, slots=True)
class CountAll:
    """Walk every page and count the records."""


PaginationMode = SearchEpisode | CountAll


@dataclass(slots=True)
class PaginationOutcome:
    record: EpisodeRecord | None = None
    total: int = 0
    pages_fetched: int = 0

    @property
    def found(self) -> bool:
        return self.record is not None


def record_matches(record: dict[str, Any], target: float) -> bool:
    """Return whether either episode field of ``record`` equals ``target``."""

    for field in _EPISODE_FIELDS:
        value = parse_episode_number(record.get(field))
        if value is not None and value == target:
            return True
    return False


class EpisodePaginator:
    """Walks listing pages in ascending order up to a fixed ceiling."""

    def __init__(self, source: ListingSource, *, max_pages: int = MAX_LISTING_PAGES) -> None:
        self._source = source
        self._max_pages = max(1, min(max_pages, MAX_LISTING_PAGES))

    async def paginate(self, catalog_id: str, mode: PaginationMode) -> PaginationOutcome:
        outcome = PaginationOutcome()
        sort = SEARCH_SORT if isinstance(mode, SearchEpisode) else None

        async with aclosing(self._iter_pages(catalog_id, sort, outcome)) as pages:
            async for records in pages:
                if isinstance(mode, CountAll):
                    outcome.total += len(records)
                    continue
                for record in records:
                    if isinstance(record, dict) and record_matches(record, mode.target):
                        outcome.record = self._build_record(record, mode.target)
                        return outcome

        if isinstance(mode, SearchEpisode) and not outcome.found:
            logger.info(
                "Episode %s of %s not found after %s page(s)",
                mode.target,
                catalog_id,
                outcome.pages_fetched,
            )
        return outcome

    async def find_episode(self, catalog_id: str, episode: float) -> EpisodeRecord | None:
        outcome = await self.paginate(catalog_id, SearchEpisode(target=float(episode)))
        return outcome.record

    async def count_episodes(self, catalog_id: str) -> int:
        outcome = await self.paginate(catalog_id, CountAll())
        return outcome.total

    async def _iter_pages(
        self, catalog_id: str, sort: str | None, outcome: PaginationOutcome
    ) -> AsyncIterator[list[Any]]:
        for page in range(1, self._max_pages + 1):
            payload = await self._source.fetch_page(catalog_id, page, sort=sort)
            outcome.pages_fetched = page
            if payload is None:
                return
            records = payload.get("data")
            if not isinstance(records, list) or not records:
                return
            yield records
        logger.warning(
            "Stopped paginating %s at the %s page ceiling", catalog_id, self._max_pages
        )

    @staticmethod
    def _build_record(record: dict[str, Any], target: float) -> EpisodeRecord:
        episode = EpisodeRecord.from_listing(record, fallback_number=target)
        if not episode.session_token:
            raise UpstreamFailure("Episode listing did not include a session token")
        return episode
