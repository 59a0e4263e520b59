"""Playwright-backed rendering sessions used by the resolution workflows."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Protocol

from playwright.async_api import Browser, BrowserContext, Page, Playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright

from ..config import Settings
from ..errors import UpstreamFailure

logger = logging.getLogger(__name__)

_LAUNCH_ARGS = [
    "--disable-gpu",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-background-networking",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-sync",
    "--no-first-run",
]

_FETCH_JSON_SCRIPT = """
async (url) => {
  try {
    const res = await fetch(url);
    if (!res.ok) return { ok: false, status: res.status, payload: null };
    return { ok: true, status: res.status, payload: await res.json() };
  } catch (err) {
    return { ok: false, status: 0, payload: null };
  }
}
"""


@dataclass(slots=True)
class FetchResult:
    """Outcome of a JSON fetch issued from inside a loaded document."""

    ok: bool
    status: int
    payload: Any = None


class DocumentPage(Protocol):
    """A loaded document that structured extractions can run against."""

    async def navigate(self, url: str, *, ready_selector: str | None = None) -> None:
        ...

    async def wait_for(self, selector: str, *, timeout: float) -> bool:
        ...

    async def title(self) -> str:
        ...

    async def extract(self, script: str, arg: Any = None) -> Any:
        ...

    async def fetch_json(self, url: str) -> FetchResult:
        ...

    async def close(self) -> None:
        ...


class RenderingSession(Protocol):
    """Pages and isolated secondary contexts owned by a single operation."""

    async def new_page(self) -> DocumentPage:
        ...

    async def open_secondary_page(self) -> DocumentPage:
        ...

    async def close(self) -> None:
        ...


class Renderer(Protocol):
    def session(self) -> AbstractAsyncContextManager[RenderingSession]:
        """Return an async context manager yielding a :class:`RenderingSession`."""
        ...


class PlaywrightPage:
    """:class:`DocumentPage` implementation wrapping a Playwright page."""

    def __init__(self, page: Page, *, timeout_seconds: float) -> None:
        self._page = page
        self._timeout_ms = timeout_seconds * 1000

    async def navigate(self, url: str, *, ready_selector: str | None = None) -> None:
        try:
            await self._page.goto(
                url, wait_until="domcontentloaded", timeout=self._timeout_ms
            )
            if ready_selector:
                await self._page.wait_for_selector(
                    ready_selector, timeout=self._timeout_ms
                )
        except PlaywrightTimeout as exc:
            raise UpstreamFailure(f"Timed out loading {url}") from exc
        except PlaywrightError as exc:
            raise UpstreamFailure(f"Navigation to {url} failed: {exc}") from exc

    async def wait_for(self, selector: str, *, timeout: float) -> bool:
        try:
            await self._page.wait_for_selector(
                selector, timeout=timeout * 1000, state="attached"
            )
        except PlaywrightTimeout:
            return False
        return True

    async def title(self) -> str:
        return await self._page.title()

    async def extract(self, script: str, arg: Any = None) -> Any:
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise UpstreamFailure(f"Page extraction failed: {exc}") from exc

    async def fetch_json(self, url: str) -> FetchResult:
        try:
            raw = await self._page.evaluate(_FETCH_JSON_SCRIPT, url)
        except PlaywrightError as exc:
            logger.warning("In-page fetch of %s failed: %s", url, exc)
            return FetchResult(ok=False, status=0)
        if not isinstance(raw, dict):
            return FetchResult(ok=False, status=0)
        return FetchResult(
            ok=bool(raw.get("ok")),
            status=int(raw.get("status") or 0),
            payload=raw.get("payload"),
        )

    async def close(self) -> None:
        await self._page.close()


class PlaywrightSession:
    """A primary browser context plus any secondary contexts it opened."""

    def __init__(self, browser: Browser, settings: Settings) -> None:
        self._browser = browser
        self._settings = settings
        self._contexts: list[BrowserContext] = []
        self._primary: BrowserContext | None = None

    async def _new_context(self) -> BrowserContext:
        kwargs: dict[str, Any] = {"locale": "en-US"}
        if self._settings.user_agent:
            kwargs["user_agent"] = self._settings.user_agent
        context = await self._browser.new_context(**kwargs)
        self._contexts.append(context)
        return context

    async def new_page(self) -> DocumentPage:
        if self._primary is None:
            self._primary = await self._new_context()
        page = await self._primary.new_page()
        return PlaywrightPage(
            page, timeout_seconds=self._settings.navigation_timeout_seconds
        )

    async def open_secondary_page(self) -> DocumentPage:
        context = await self._new_context()
        page = await context.new_page()
        return PlaywrightPage(
            page, timeout_seconds=self._settings.navigation_timeout_seconds
        )

    async def close(self) -> None:
        while self._contexts:
            context = self._contexts.pop()
            try:
                await context.close()
            except PlaywrightError as exc:
                logger.warning("Failed to close browser context: %s", exc)
        self._primary = None


class PlaywrightRenderer:
    """Owns the process-wide browser and hands out per-request sessions."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._slots = asyncio.Semaphore(settings.max_sessions)

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self._settings.headless, args=_LAUNCH_ARGS
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.info(
            "Playwright browser started (headless=%s, max_sessions=%s)",
            self._settings.headless,
            self._settings.max_sessions,
        )

    async def stop(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.warning("Failed to close browser: %s", exc)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[PlaywrightSession]:
        if self._browser is None:
            raise UpstreamFailure("Browser is not running")
        async with self._slots:
            session = PlaywrightSession(self._browser, self._settings)
            try:
                yield session
            finally:
                await session.close()
