"""Tests for the Playwright session and renderer wrappers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError

import app.services.browser as browser_module
from app.config import Settings
from app.errors import UpstreamFailure
from app.services.browser import PlaywrightRenderer, PlaywrightSession


class StubPage:
    async def close(self) -> None:
        return None


class StubContext:
    def __init__(self, *, fail_close: bool = False) -> None:
        self.fail_close = fail_close
        self.close_calls = 0

    async def new_page(self) -> StubPage:
        return StubPage()

    async def close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise PlaywrightError("Target page, context or browser has been closed")


class StubBrowser:
    def __init__(self, *, fail_close: bool = False) -> None:
        self.fail_close = fail_close
        self.contexts: list[StubContext] = []
        self.context_kwargs: list[dict[str, Any]] = []

    async def new_context(self, **kwargs: Any) -> StubContext:
        context = StubContext(fail_close=self.fail_close)
        self.contexts.append(context)
        self.context_kwargs.append(kwargs)
        return context

    async def close(self) -> None:
        return None


def build_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


def running_renderer(browser: StubBrowser, **overrides: Any) -> PlaywrightRenderer:
    renderer = PlaywrightRenderer(build_settings(**overrides))
    renderer._browser = browser  # type: ignore[assignment]
    return renderer


@pytest.mark.anyio("asyncio")
async def test_session_closes_primary_and_secondary_contexts() -> None:
    browser = StubBrowser()
    session = PlaywrightSession(browser, build_settings(USER_AGENT="pahelinks-test"))  # type: ignore[arg-type]

    await session.new_page()
    await session.new_page()
    await session.open_secondary_page()
    await session.close()

    assert len(browser.contexts) == 2
    assert all(context.close_calls == 1 for context in browser.contexts)
    assert browser.context_kwargs[0] == {"locale": "en-US", "user_agent": "pahelinks-test"}


@pytest.mark.anyio("asyncio")
async def test_context_close_failure_is_logged_and_work_error_propagates(
    caplog: pytest.LogCaptureFixture,
) -> None:
    browser = StubBrowser(fail_close=True)
    renderer = running_renderer(browser)

    with caplog.at_level(logging.WARNING, logger="app.services.browser"):
        with pytest.raises(RuntimeError, match="extraction blew up"):
            async with renderer.session() as session:
                await session.new_page()
                await session.open_secondary_page()
                raise RuntimeError("extraction blew up")

    assert [context.close_calls for context in browser.contexts] == [1, 1]
    warnings = [
        record.getMessage()
        for record in caplog.records
        if record.levelno == logging.WARNING
    ]
    assert len(warnings) == 2
    assert all(message.startswith("Failed to close browser context") for message in warnings)


@pytest.mark.anyio("asyncio")
async def test_single_slot_renderer_holds_back_second_session() -> None:
    renderer = running_renderer(StubBrowser(), MAX_SESSIONS=1)
    first_entered = asyncio.Event()
    release_first = asyncio.Event()
    second_entered = asyncio.Event()

    async def first() -> None:
        async with renderer.session():
            first_entered.set()
            await release_first.wait()

    async def second() -> None:
        async with renderer.session():
            second_entered.set()

    first_task = asyncio.create_task(first())
    await first_entered.wait()
    second_task = asyncio.create_task(second())
    await asyncio.sleep(0.05)

    assert not second_entered.is_set()

    release_first.set()
    await asyncio.wait_for(second_task, timeout=1)
    await first_task

    assert second_entered.is_set()


@pytest.mark.anyio("asyncio")
async def test_session_requires_started_browser() -> None:
    renderer = PlaywrightRenderer(build_settings())

    with pytest.raises(UpstreamFailure):
        async with renderer.session():
            pass


class StubChromium:
    async def launch(self, **kwargs: Any) -> StubBrowser:
        raise PlaywrightError("Executable doesn't exist")


class StubPlaywright:
    def __init__(self) -> None:
        self.chromium = StubChromium()
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


class StubPlaywrightManager:
    def __init__(self, playwright: StubPlaywright) -> None:
        self._playwright = playwright

    async def start(self) -> StubPlaywright:
        return self._playwright


@pytest.mark.anyio("asyncio")
async def test_failed_launch_stops_playwright(monkeypatch: pytest.MonkeyPatch) -> None:
    playwright = StubPlaywright()
    monkeypatch.setattr(
        browser_module, "async_playwright", lambda: StubPlaywrightManager(playwright)
    )
    renderer = PlaywrightRenderer(build_settings())

    with pytest.raises(PlaywrightError):
        await renderer.start()

    assert playwright.stopped is True

    # A second stop from lifespan teardown is harmless.
    await renderer.stop()
