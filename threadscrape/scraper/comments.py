"""Comment listing fetch and bounded flattening.

The listing endpoint (``<base>/<post_id>.json``) returns a two-element array:
index 0 is the post itself, index 1 the comment tree::

    [
      {...post listing...},
      {"data": {"children": [{"data": {"id": "c1", "body": "...", "depth": 0}}, ...]}}
    ]

Only the first ``MAX_COMMENTS`` top-level children are decoded; replies are
never descended into and later children are never inspected.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from threadscrape.config import settings
from threadscrape.exceptions import FormatError, ProtocolError, TransportError
from threadscrape.scraper.models import Comment

logger = logging.getLogger(__name__)

MAX_COMMENTS = 2


# ---------------------------------------------------------------------------
# Listing schema
# ---------------------------------------------------------------------------

class _CommentData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: StrictStr = Field(min_length=1)
    body: StrictStr
    depth: Optional[StrictInt] = None


class _CommentChild(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: _CommentData


class _ListingData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Left untyped: children past the bound must not be validated.
    children: list[Any]


class _Listing(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: _ListingData


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_post_id(url: str) -> str:
    """Return the path segment following ``comments`` in *url*.

    ``https://www.reddit.com/r/x/comments/abc123/title/`` → ``"abc123"``.

    Raises:
        FormatError: If there is no ``comments/<id>`` segment.
    """
    parts = urlsplit(url).path.split("/")
    for i, part in enumerate(parts[:-1]):
        if part == "comments" and parts[i + 1]:
            return parts[i + 1]
    raise FormatError(f"could not extract post ID from URL {url!r}")


def parse_listing(document: Any, limit: int = MAX_COMMENTS) -> list[Comment]:
    """Decode the first *limit* top-level comments of a listing document.

    Raises:
        FormatError: If the document has fewer than two entries, element 1 has
            no ``data.children`` array, or a child within the bound lacks a
            string ``id``/``body``.
    """
    if not isinstance(document, list) or len(document) < 2:
        raise FormatError("comment listing must be an array of at least two entries")

    try:
        listing = _Listing.model_validate(document[1])
    except ValidationError as exc:
        raise FormatError(f"comment listing has no children array: {exc}") from exc

    comments: list[Comment] = []
    for index, raw in enumerate(listing.data.children[:limit]):
        try:
            child = _CommentChild.model_validate(raw)
        except ValidationError as exc:
            raise FormatError(f"comment #{index} is malformed: {exc}") from exc
        comments.append(
            Comment(comment_id=child.data.id, body=child.data.body, depth=child.data.depth)
        )
    return comments


def fetch_comments(
    post_id: str,
    *,
    base_url: Optional[str] = None,
    user_agent: Optional[str] = None,
    timeout: Optional[float] = None,
) -> list[Comment]:
    """Fetch the listing for *post_id* and return its first top-level comments.

    Raises:
        TransportError: On network failure or a 4xx/5xx status code.
        ProtocolError: If the body is not JSON.
        FormatError: If the JSON does not have the listing shape or the
            listing URL is malformed.
    """
    url = f"{(base_url or settings.comments_base_url).rstrip('/')}/{post_id}.json"

    try:
        with httpx.Client(
            headers={"User-Agent": user_agent or settings.user_agent},
            timeout=timeout or settings.request_timeout,
            follow_redirects=True,
        ) as client:
            response = client.get(url)
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

    try:
        document = response.json()
    except ValueError as exc:
        raise ProtocolError(f"comment listing for {post_id} is not JSON") from exc

    comments = parse_listing(document)
    logger.debug("decoded %d comment(s) for post %s", len(comments), post_id)
    return comments
