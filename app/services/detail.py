"""Extraction of structured metadata from a title's detail page."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable
from urllib.parse import urlparse

from ..config import MAX_LISTING_PAGES
from ..errors import InvalidRequestError, UpstreamFailure
from ..models import ExternalLink, TitleDetail
from ..utils import last_path_segment
from .browser import DocumentPage
from .listing import ListingSource
from .paginator import EpisodePaginator

logger = logging.getLogger(__name__)

DETAIL_PATH_PREFIX = "/anime/"
DETAIL_READY_SELECTOR = "section.main"

CANONICAL_URL_SCRIPT = """
() => {
  const meta = document.querySelector('meta[property="og:url"]');
  return meta ? meta.content : null;
}
"""

DETAIL_FIELDS_SCRIPT = """
() => {
  const text = (selector) => {
    const el = document.querySelector(selector);
    return el ? el.textContent.trim() : null;
  };
  const attr = (selector, name) => {
    const el = document.querySelector(selector);
    return el ? el.getAttribute(name) : null;
  };
  const attributes = [];
  document.querySelectorAll('.anime-info p').forEach((p) => {
    const strong = p.querySelector('strong');
    if (!strong) return;
    attributes.push({ label: strong.textContent, text: p.textContent });
  });
  return {
    title: text('h1 span'),
    japaneseTitle: text('h2.japanese'),
    synopsis: text('.anime-synopsis'),
    poster: attr('.anime-poster img', 'data-src'),
    cover: attr('.anime-cover', 'data-src'),
    attributes,
    genres: Array.from(document.querySelectorAll('.anime-genre li a')).map((a) => a.textContent.trim()),
    externalLinks: Array.from(document.querySelectorAll('.external-links a')).map((a) => ({
      label: a.textContent.trim(),
      url: a.href,
    })),
  };
}
"""

ListingFactory = Callable[[DocumentPage], ListingSource]


def build_attribute_map(pairs: Iterable[Any]) -> dict[str, str]:
    """Turn ``{label, text}`` pairs into a ``label -> value`` mapping.

    The label is lower-cased with any trailing colon removed; the value is
    the block text with the label text taken out.
    """

    attributes: dict[str, str] = {}
    for pair in pairs:
        if not isinstance(pair, dict):
            continue
        label = pair.get("label")
        text = pair.get("text")
        if not isinstance(label, str) or not isinstance(text, str):
            continue
        key = label.strip().rstrip(":").strip().lower()
        if not key:
            continue
        attributes[key] = text.replace(label, "", 1).strip()
    return attributes


def _optional_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    return None


class DetailExtractor:
    """Resolves a detail page into a :class:`TitleDetail`."""

    def __init__(
        self,
        base_url: str,
        listing_factory: ListingFactory,
        *,
        max_pages: int = MAX_LISTING_PAGES,
    ) -> None:
        parsed = urlparse(base_url)
        self._scheme = parsed.scheme.lower()
        self._host = (parsed.hostname or "").lower()
        self._listing_factory = listing_factory
        self._max_pages = max_pages

    def validate_url(self, detail_url: str | None) -> str:
        """Return the URL if it points at a detail page of the catalog host."""

        candidate = (detail_url or "").strip()
        if not candidate:
            raise InvalidRequestError("Invalid or missing AnimePahe URL.")
        try:
            parsed = urlparse(candidate)
            port = parsed.port
        except ValueError as exc:
            raise InvalidRequestError("Invalid or missing AnimePahe URL.") from exc
        if (
            parsed.scheme.lower() != self._scheme
            or (parsed.hostname or "").lower() != self._host
            or port is not None
            or parsed.username is not None
            or not parsed.path.startswith(DETAIL_PATH_PREFIX)
            or not parsed.path[len(DETAIL_PATH_PREFIX):].strip("/")
        ):
            raise InvalidRequestError("Invalid or missing AnimePahe URL.")
        return candidate

    async def extract(self, page: DocumentPage, detail_url: str) -> TitleDetail:
        url = self.validate_url(detail_url)
        await page.navigate(url, ready_selector=DETAIL_READY_SELECTOR)

        catalog_id = last_path_segment(await page.extract(CANONICAL_URL_SCRIPT))
        if not catalog_id:
            raise UpstreamFailure("Failed to extract anime ID")

        fields = await page.extract(DETAIL_FIELDS_SCRIPT)
        if not isinstance(fields, dict):
            raise UpstreamFailure("Detail page returned no metadata")

        paginator = EpisodePaginator(
            self._listing_factory(page), max_pages=self._max_pages
        )
        total = await paginator.count_episodes(catalog_id)
        logger.info("Resolved detail for %s with %s episode(s)", catalog_id, total)

        links = [
            ExternalLink(label=str(item.get("label") or ""), url=str(item["url"]))
            for item in fields.get("externalLinks") or []
            if isinstance(item, dict) and item.get("url")
        ]
        return TitleDetail(
            title=_optional_text(fields.get("title")),
            japanese_title=_optional_text(fields.get("japaneseTitle")),
            synopsis=_optional_text(fields.get("synopsis")),
            poster_url=_optional_text(fields.get("poster")),
            cover_url=_optional_text(fields.get("cover")),
            attributes=build_attribute_map(fields.get("attributes") or []),
            genres=[genre for genre in fields.get("genres") or [] if isinstance(genre, str)],
            external_links=links,
            catalog_id=catalog_id,
            total_episodes=total,
        )
