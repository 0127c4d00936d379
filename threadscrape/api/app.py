"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging, builds the challenge solver once
(a missing ``CAPSOLVER_API_KEY`` is reported here, not per request) and stores
a shared :class:`ScrapePipeline` on ``app.state.pipeline``.  The result sink
path lives on ``app.state.results_path``.

Routes
------
    GET /                 — welcome text
    GET /scrape?url=...   — scrape a discussion page
    GET /scrape/latest    — last persisted scrape result
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from threadscrape.api.routers import scrape as scrape_router
from threadscrape.config import settings
from threadscrape.logging_config import configure_logging
from threadscrape.scraper.pipeline import ScrapePipeline
from threadscrape.scraper.solver import build_solver


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire the pipeline and result sink on startup."""
    configure_logging(settings.log_level)
    app.state.pipeline = ScrapePipeline(settings, build_solver(settings))
    app.state.results_path = settings.results_path
    yield


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="threadscrape API",
        description=(
            "Scrapes discussion pages: title heading, first top-level comments "
            "and reCAPTCHA resolution through CapSolver."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/", response_class=PlainTextResponse, tags=["meta"])
    def home() -> str:
        return "Welcome to the threadscrape server!"

    app.include_router(scrape_router.router, prefix="/scrape", tags=["scrape"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn threadscrape.api.app:app --port 8080
app = create_app()
