"""Entry point for the FastAPI-powered link resolver."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .errors import ResolutionError
from .services.browser import DocumentPage, PlaywrightRenderer
from .services.detail import ListingFactory
from .services.listing import HttpListingSource, PageListingSource
from .services.resolver import ResolutionOrchestrator

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    async with AsyncExitStack() as exit_stack:
        renderer = PlaywrightRenderer(settings)
        exit_stack.push_async_callback(renderer.stop)
        await renderer.start()

        listing_factory: ListingFactory
        if settings.listing_transport == "http":
            listing_client = await exit_stack.enter_async_context(
                httpx.AsyncClient(
                    base_url=settings.base_url,
                    timeout=httpx.Timeout(20.0, connect=10.0),
                    headers={"User-Agent": settings.user_agent or settings.app_name},
                )
            )

            def listing_factory(_: DocumentPage) -> HttpListingSource:
                return HttpListingSource(listing_client)

        else:

            def listing_factory(page: DocumentPage) -> PageListingSource:
                return PageListingSource(page, settings.base_url)

        fastapi_app.state.resolver = ResolutionOrchestrator(
            settings, renderer, listing_factory
        )
        logger.info(
            "Resolver ready for %s (listing transport: %s)",
            settings.base_url,
            settings.listing_transport,
        )
        yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Search, metadata and episode link resolution for AnimePahe",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_resolver(app: FastAPI) -> ResolutionOrchestrator:
    resolver = getattr(app.state, "resolver", None)
    if not isinstance(resolver, ResolutionOrchestrator):
        raise RuntimeError("Resolver not initialised")
    return resolver


def _http_error(exc: ResolutionError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/search")
    async def search(q: str | None = None) -> list[dict[str, Any]]:
        resolver = get_resolver(fastapi_app)
        try:
            results = await resolver.search(q)
        except ResolutionError as exc:
            raise _http_error(exc) from exc
        return [entry.model_dump() for entry in results]

    @fastapi_app.get("/info")
    async def info(url: str | None = None) -> dict[str, Any]:
        resolver = get_resolver(fastapi_app)
        try:
            detail = await resolver.detail(url)
        except ResolutionError as exc:
            raise _http_error(exc) from exc
        return detail.to_payload()

    @fastapi_app.get("/api/episode")
    async def episode(
        id: str | None = None, episode: str | None = None
    ) -> dict[str, Any]:
        resolver = get_resolver(fastapi_app)
        try:
            resolution = await resolver.resolve_episode(id, episode)
        except ResolutionError as exc:
            raise _http_error(exc) from exc
        return resolution.to_payload()


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
