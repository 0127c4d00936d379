"""Scrape endpoints.

Routes
------
GET /scrape?url=https://...   → run the pipeline, persist and return the record
GET /scrape/latest            → the last persisted record

The pipeline is synchronous and may block for a long time while a challenge
is being solved, so it runs in the default executor.  While it runs the
handler watches for a client disconnect and, if one happens, sets the cancel
event handed to the pipeline so the solver's poll loop stops.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from threadscrape.exceptions import (
    ChallengeFailedError,
    ChallengeTimeoutError,
    ConfigurationError,
    FormatError,
    ProtocolError,
    ScrapeCancelledError,
    ScrapeError,
    TransportError,
)
from threadscrape.storage import load_result, save_result

logger = logging.getLogger(__name__)

router = APIRouter()

_DISCONNECT_POLL_SECONDS = 0.5

# Most specific first; ScrapeError is the catch-all.
_STATUS_BY_ERROR: list[tuple[type[ScrapeError], int]] = [
    (FormatError, 400),
    (ScrapeCancelledError, 499),
    (ConfigurationError, 503),
    (ChallengeTimeoutError, 504),
    (ChallengeFailedError, 502),
    (TransportError, 502),
    (ProtocolError, 502),
    (ScrapeError, 500),
]


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CommentOut(BaseModel):
    comment_id: str
    body: str
    depth: Optional[int] = None


class ScrapeResponse(BaseModel):
    url: str
    time: str
    h1: str
    comments: list[CommentOut]
    html: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status_for(exc: ScrapeError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


async def _watch_disconnect(request: Request, cancel: threading.Event) -> None:
    """Set *cancel* as soon as the client goes away."""
    while not cancel.is_set():
        if await request.is_disconnected():
            logger.info("client disconnected; cancelling scrape")
            cancel.set()
            return
        await asyncio.sleep(_DISCONNECT_POLL_SECONDS)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=ScrapeResponse, response_model_exclude_none=True)
async def scrape_endpoint(request: Request, url: Optional[str] = None) -> dict[str, Any]:
    """Scrape *url*: heading, first two top-level comments and raw markup.

    The result is also written to the result sink, replacing the previous one.
    """
    if not url or not url.strip():
        raise HTTPException(status_code=400, detail="Missing 'url' query parameter")

    pipeline = request.app.state.pipeline
    cancel = threading.Event()
    loop = asyncio.get_running_loop()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel))
    try:
        result = await loop.run_in_executor(None, pipeline.scrape, url, cancel)
    except ScrapeError as exc:
        logger.warning("scrape of %s failed: %s", url, exc)
        raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc
    finally:
        cancel.set()
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

    try:
        save_result(result, request.app.state.results_path)
    except OSError as exc:
        logger.warning("could not persist scrape result: %s", exc)

    return result.to_dict()


@router.get("/latest", response_model=ScrapeResponse, response_model_exclude_none=True)
def latest_endpoint(request: Request) -> dict[str, Any]:
    """Return the most recently persisted scrape result."""
    try:
        result = load_result(request.app.state.results_path)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="No scrape result stored yet") from exc
    except FormatError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return result.to_dict()
