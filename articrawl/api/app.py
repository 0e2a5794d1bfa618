"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single ``httpx.AsyncClient`` (shared across all
requests via ``request.app.state.http_client``).  On shutdown it closes the
client cleanly.  The client is the only state shared between requests.

Routers
-------
    /api/v1/crawler  — article crawl (GET ?url=...)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from articrawl import __version__
from articrawl.config import configure_logging, settings

from articrawl.api.routers import crawler as crawler_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shared HTTP client on startup and close it on shutdown."""
    client = httpx.AsyncClient()
    app.state.http_client = client
    try:
        yield
    finally:
        await client.aclose()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    configure_logging()
    app = FastAPI(
        title="articrawl API",
        description=(
            "Fetches an article URL, strips boilerplate and returns the "
            "normalised title, text and metadata."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(crawler_router.router, prefix="/api/v1/crawler", tags=["crawler"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn articrawl.api.app:app --reload
app = create_app()
