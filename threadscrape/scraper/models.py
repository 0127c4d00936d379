"""Data models for the scraper pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from threadscrape.exceptions import FormatError

RECAPTCHA_V2_PROXYLESS = "ReCaptchaV2TaskProxyless"


@dataclass(frozen=True)
class FetchedPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    content: bytes
    status_code: int

    @property
    def html(self) -> str:
        """The content decoded as UTF-8 (undecodable bytes replaced)."""
        return self.content.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Challenge solving
# ---------------------------------------------------------------------------

class ChallengeStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ChallengeTask:
    """A solve task accepted by the solving service."""

    task_id: str
    website_url: str
    task_type: str = RECAPTCHA_V2_PROXYLESS


@dataclass(frozen=True)
class ChallengeResolution:
    """Outcome of polling a :class:`ChallengeTask`.

    ``token`` is non-empty if and only if ``status`` is ``READY``.
    """

    status: ChallengeStatus
    token: str = ""
    error: str = ""

    def __post_init__(self) -> None:
        if (self.status is ChallengeStatus.READY) != bool(self.token):
            raise ValueError(
                f"resolution token must be present exactly when ready "
                f"(status={self.status.value!r}, token={'set' if self.token else 'empty'})"
            )


# ---------------------------------------------------------------------------
# Scrape output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Comment:
    """A single top-level comment of a discussion thread."""

    comment_id: str
    body: str
    depth: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"comment_id": self.comment_id, "body": self.body}
        if self.depth is not None:
            data["depth"] = self.depth
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        try:
            return cls(
                comment_id=data["comment_id"],
                body=data["body"],
                depth=data.get("depth"),
            )
        except (KeyError, TypeError) as exc:
            raise FormatError(f"malformed comment record: {exc}") from exc


@dataclass(frozen=True)
class ScrapeResult:
    """Final output of one scrape.

    Serialises to the wire record ``{url, time, h1, comments, html}`` where
    ``time`` is a human-readable duration such as ``"1.234567s"``.
    """

    url: str
    elapsed: timedelta
    heading: str
    comments: tuple[Comment, ...]
    html: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "time": format_duration(self.elapsed),
            "h1": self.heading,
            "comments": [c.to_dict() for c in self.comments],
            "html": self.html,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrapeResult":
        """Rebuild a result from its wire record.

        Raises:
            FormatError: If a required key is missing or malformed.
        """
        try:
            return cls(
                url=data["url"],
                elapsed=parse_duration(data["time"]),
                heading=data["h1"],
                comments=tuple(Comment.from_dict(c) for c in data.get("comments") or []),
                html=data["html"],
            )
        except (KeyError, TypeError) as exc:
            raise FormatError(f"malformed scrape result: {exc}") from exc


# ---------------------------------------------------------------------------
# Duration helpers
# ---------------------------------------------------------------------------

_US_PER = {
    "h": 3_600_000_000,
    "m": 60_000_000,
    "s": 1_000_000,
    "ms": 1_000,
    "µs": 1,
    "us": 1,
}
_DURATION_TOKEN = re.compile(r"(\d+(?:\.\d+)?)(ms|µs|us|h|m|s)")


def _trim(whole: int, frac: int, width: int) -> str:
    digits = f"{frac:0{width}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(delta: timedelta) -> str:
    """Render *delta* as ``"12µs"``, ``"850.5ms"``, ``"1.25s"`` or ``"1h2m3.5s"``.

    Microsecond precision is kept so :func:`parse_duration` is its inverse.
    """
    total_us = delta // timedelta(microseconds=1)
    if total_us < 0:
        raise ValueError("duration must not be negative")
    if total_us < 1_000:
        return f"{total_us}µs"
    if total_us < 1_000_000:
        return _trim(total_us // 1_000, total_us % 1_000, 3) + "ms"

    hours, rem = divmod(total_us, _US_PER["h"])
    minutes, rem = divmod(rem, _US_PER["m"])
    seconds = _trim(rem // 1_000_000, rem % 1_000_000, 6) + "s"
    if hours:
        return f"{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{minutes}m{seconds}"
    return seconds


def parse_duration(text: str) -> timedelta:
    """Inverse of :func:`format_duration`.

    Raises:
        FormatError: If *text* is not a duration string.
    """
    if not isinstance(text, str) or not text:
        raise FormatError(f"invalid duration: {text!r}")
    pos = 0
    total = Decimal(0)
    for match in _DURATION_TOKEN.finditer(text):
        if match.start() != pos:
            break
        total += Decimal(match.group(1)) * _US_PER[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise FormatError(f"invalid duration: {text!r}")
    return timedelta(microseconds=int(total))
