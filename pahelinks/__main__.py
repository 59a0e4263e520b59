"""Module executed when running ``python -m pahelinks``."""

from __future__ import annotations

import uvicorn

from app.config import settings


def main() -> None:
    """Serve the resolver API with uvicorn."""

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
