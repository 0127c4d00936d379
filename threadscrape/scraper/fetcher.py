"""HTTP page fetcher."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from threadscrape.config import settings
from threadscrape.exceptions import FormatError, ProtocolError, TransportError
from threadscrape.scraper.models import FetchedPage

logger = logging.getLogger(__name__)


def fetch_url(
    url: str,
    *,
    params: Optional[dict[str, Any]] = None,
    user_agent: Optional[str] = None,
    timeout: Optional[float] = None,
) -> FetchedPage:
    """Fetch *url* with a browser-like ``User-Agent`` and return a :class:`FetchedPage`.

    Redirects are followed; there is no retry.

    Args:
        url: Page to fetch.
        params: Extra query parameters (used to resubmit a challenge token).
        user_agent: Overrides ``settings.user_agent``.
        timeout: Overrides ``settings.request_timeout``.

    Raises:
        FormatError: If *url* cannot be parsed as a URL.
        TransportError: On network failure or a 4xx/5xx status code.
        ProtocolError: If the server answered with an empty body.
    """
    headers = {"User-Agent": user_agent or settings.user_agent}

    try:
        with httpx.Client(
            headers=headers,
            timeout=timeout or settings.request_timeout,
            follow_redirects=True,
        ) as client:
            response = client.get(url, params=params)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TransportError(
            f"GET {url} returned HTTP {exc.response.status_code}",
            url=url,
            status_code=exc.response.status_code,
        ) from exc
    except httpx.InvalidURL as exc:
        raise FormatError(f"invalid URL {url!r}: {exc}") from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"GET {url} failed: {exc}", url=url) from exc

    if not response.content:
        raise ProtocolError(f"GET {url} returned an empty body")

    logger.debug("fetched %s (%d bytes)", url, len(response.content))
    return FetchedPage(url=url, content=response.content, status_code=response.status_code)
