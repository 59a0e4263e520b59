"""Loading the full catalog listing for title searches."""

from __future__ import annotations

import logging
from typing import Any

from ..models import CatalogEntry
from .browser import DocumentPage

logger = logging.getLogger(__name__)

CATALOG_PATH = "/anime"
CATALOG_READY_SELECTOR = ".tab-content .tab-pane"

# The listing lazy-renders panes as the document scrolls.
AUTO_SCROLL_SCRIPT = """
async () => {
  await new Promise((resolve) => {
    let totalHeight = 0;
    const distance = 100;
    const timer = setInterval(() => {
      const scrollHeight = document.body.scrollHeight;
      window.scrollBy(0, distance);
      totalHeight += distance;
      if (totalHeight >= scrollHeight) {
        clearInterval(timer);
        resolve();
      }
    }, 100);
  });
}
"""

CATALOG_ENTRIES_SCRIPT = """
() => {
  const entries = [];
  document.querySelectorAll('.tab-content .tab-pane').forEach((pane) => {
    pane.querySelectorAll('.col-12.col-md-6 a').forEach((a) => {
      entries.push({ title: a.getAttribute('title'), link: a.getAttribute('href') });
    });
  });
  return entries;
}
"""


def parse_catalog_entries(raw: Any) -> list[CatalogEntry]:
    """Keep only entries that carry both a title and a link, in page order."""

    if not isinstance(raw, list):
        return []
    entries: list[CatalogEntry] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        title = item.get("title")
        link = item.get("link")
        if not (isinstance(title, str) and title and isinstance(link, str) and link):
            continue
        entries.append(CatalogEntry(title=title, link=link))
    return entries


class CatalogFetcher:
    """Loads the catalog listing page and returns its (title, link) pairs."""

    def __init__(self, base_url: str) -> None:
        self._catalog_url = f"{base_url.rstrip('/')}{CATALOG_PATH}"

    async def fetch(self, page: DocumentPage) -> list[CatalogEntry]:
        await page.navigate(self._catalog_url, ready_selector=CATALOG_READY_SELECTOR)
        await page.extract(AUTO_SCROLL_SCRIPT)
        entries = parse_catalog_entries(await page.extract(CATALOG_ENTRIES_SCRIPT))
        logger.info("Loaded %s catalog entries", len(entries))
        return entries
