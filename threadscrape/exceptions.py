"""Exception hierarchy for the scraper.

All custom exceptions subclass ``ScrapeError`` so the HTTP layer and the CLI
can catch the whole family with a single ``except`` clause.

Hierarchy::

    ScrapeError
    ├── ConfigurationError
    ├── TransportError        (url, status_code)
    ├── ProtocolError
    ├── FormatError
    ├── ChallengeFailedError
    ├── ChallengeTimeoutError (task_id, elapsed)
    └── ScrapeCancelledError
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for all scraper exceptions."""


class ConfigurationError(ScrapeError):
    """A required setting (e.g. the CapSolver client key) is missing."""


class TransportError(ScrapeError):
    """An outbound HTTP call could not complete or returned a non-2xx status.

    Args:
        message: Human-readable description of the failure.
        url: The URL that was being requested.
        status_code: HTTP status when a response was received, else ``None``.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ProtocolError(ScrapeError):
    """A response arrived but could not be decoded into the expected shape."""


class FormatError(ScrapeError):
    """Decoded data is missing required structure (post id, children, ...)."""


class ChallengeFailedError(ScrapeError):
    """The solving service explicitly reported that a task failed."""


class ChallengeTimeoutError(ScrapeError):
    """A challenge task was not resolved within the configured time budget.

    Args:
        message: Human-readable description.
        task_id: Identifier of the task that timed out.
        elapsed: Seconds spent polling before giving up.
    """

    def __init__(self, message: str, task_id: str, elapsed: float) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.elapsed = elapsed


class ScrapeCancelledError(ScrapeError):
    """The caller went away while the scrape was still in progress."""
