"""Resolution of an episode's play page into classified links."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ..config import MAX_LISTING_PAGES
from ..errors import NotFoundError
from ..models import EpisodeResolution, LinkBundle
from ..utils import host_matches, normalize_episode_number
from .browser import DocumentPage, RenderingSession
from .listing import ListingSource
from .paginator import EpisodePaginator

logger = logging.getLogger(__name__)

RESOLUTION_MENU_SELECTOR = "#resolutionMenu button[data-src]"
DOWNLOAD_QUALITIES = ("360", "480", "720", "1080")
AUDIO_BUCKETS = {"jpn": "sub", "eng": "dub"}

PLAY_OPTIONS_SCRIPT = """
() => ({
  streams: Array.from(document.querySelectorAll('#resolutionMenu button[data-src]')).map((b) => ({
    resolution: b.getAttribute('data-resolution'),
    audio: b.getAttribute('data-audio'),
    src: b.getAttribute('data-src'),
  })),
  downloads: Array.from(document.querySelectorAll('#pickDownload a')).map((a) => ({
    text: a.innerText,
    href: a.href,
  })),
})
"""


def _bucket(bundle: LinkBundle, name: str) -> dict[str, str]:
    return bundle.dub if name == "dub" else bundle.sub


def classify_streams(streams: Iterable[Any], bundle: LinkBundle) -> LinkBundle:
    """Place player sources into ``bundle`` keyed by ``<resolution>p``.

    Only ``jpn`` (sub) and ``eng`` (dub) audio tags are kept.
    """

    for stream in streams:
        if not isinstance(stream, dict):
            continue
        bucket = AUDIO_BUCKETS.get(str(stream.get("audio") or "").strip())
        resolution = str(stream.get("resolution") or "").strip()
        src = stream.get("src")
        if bucket is None or not resolution or not src:
            continue
        _bucket(bundle, bucket)[f"{resolution}p"] = str(src)
    return bundle


def classify_downloads(
    downloads: Iterable[Any], bundle: LinkBundle, *, download_host: str
) -> LinkBundle:
    """Place mirror download links into ``bundle`` keyed by ``<quality>p_download``."""

    for download in downloads:
        if not isinstance(download, dict):
            continue
        href = download.get("href")
        if not isinstance(href, str) or not host_matches(href, download_host):
            continue
        text = str(download.get("text") or "").strip().lower()
        quality = next((q for q in DOWNLOAD_QUALITIES if q in text), None)
        if quality is None:
            continue
        bucket = "dub" if "eng" in text else "sub"
        _bucket(bundle, bucket)[f"{quality}p_download"] = href
    return bundle


class PlaybackLinkResolver:
    """Locates an episode and extracts its stream and download links."""

    def __init__(
        self,
        base_url: str,
        *,
        download_host: str,
        settle_seconds: float,
        max_pages: int = MAX_LISTING_PAGES,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._download_host = download_host
        self._settle_seconds = settle_seconds
        self._max_pages = max_pages

    def play_url(self, catalog_id: str, session_token: str) -> str:
        return f"{self._base_url}/play/{catalog_id}/{session_token}"

    async def resolve(
        self,
        session: RenderingSession,
        listing: ListingSource,
        catalog_id: str,
        episode: float,
    ) -> EpisodeResolution:
        paginator = EpisodePaginator(listing, max_pages=self._max_pages)
        record = await paginator.find_episode(catalog_id, episode)
        if record is None:
            raise NotFoundError(f"Episode {normalize_episode_number(episode)} not found.")

        play_url = self.play_url(catalog_id, record.session_token)
        play_page = await session.open_secondary_page()
        try:
            links = await self._extract_links(play_page, play_url)
        finally:
            try:
                await play_page.close()
            except Exception as exc:
                logger.warning("Failed to close play page %s: %s", play_url, exc)

        if links.is_empty():
            logger.warning("No playback links found on %s", play_url)
        logger.info(
            "Resolved %s episode %s: %s sub / %s dub link(s)",
            catalog_id,
            record.episode_number,
            len(links.sub),
            len(links.dub),
        )
        return EpisodeResolution(
            catalog_id=catalog_id,
            episode_number=record.episode_number,
            snapshot_url=record.snapshot_url,
            play_url=play_url,
            links=links,
        )

    async def _extract_links(self, page: DocumentPage, play_url: str) -> LinkBundle:
        await page.navigate(play_url)
        # The player fills the resolution menu asynchronously after load.
        ready = await page.wait_for(
            RESOLUTION_MENU_SELECTOR, timeout=self._settle_seconds
        )
        if not ready:
            logger.warning(
                "Player options did not appear within %.1fs on %s",
                self._settle_seconds,
                play_url,
            )

        raw = await page.extract(PLAY_OPTIONS_SCRIPT)
        if not isinstance(raw, dict):
            raw = {}
        bundle = LinkBundle()
        classify_streams(raw.get("streams") or [], bundle)
        classify_downloads(
            raw.get("downloads") or [], bundle, download_host=self._download_host
        )
        return bundle
