"""reCAPTCHA v2 resolution through the CapSolver task API.

Task lifecycle
--------------
``submit_task`` creates a ``ReCaptchaV2TaskProxyless`` task and returns its
identifier.  ``await_resolution`` then polls ``getTaskResult``::

    Created → Pending ⟲ → Ready   (token returned)
                        → Failed  (ChallengeFailedError)

Polling is bounded:

* pending          → wait ``poll_interval`` and poll again
* transport error  → retry with exponential backoff, capped at ``max_poll_interval``
* protocol error   → retry; abort after ``max_protocol_errors`` in a row
  (any other poll outcome, a transport error included, ends the run)
* failed / error   → abort immediately
* wall clock       → ``ChallengeTimeoutError`` once ``timeout`` seconds have passed
* ``cancel`` set   → ``ScrapeCancelledError``; waits are interruptible
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Optional

import httpx

from threadscrape.config import Settings
from threadscrape.exceptions import (
    ChallengeFailedError,
    ChallengeTimeoutError,
    ConfigurationError,
    ProtocolError,
    ScrapeCancelledError,
    TransportError,
)
from threadscrape.scraper.models import (
    RECAPTCHA_V2_PROXYLESS,
    ChallengeResolution,
    ChallengeStatus,
    ChallengeTask,
)

logger = logging.getLogger(__name__)

_PENDING_STATUSES = frozenset({"idle", "processing", "pending"})


def _service_error(data: Optional[dict[str, Any]]) -> str:
    """Return the error reported by the service in *data*, or ``""``."""
    if not data:
        return ""
    error_id = data.get("errorId")
    if error_id:
        return str(
            data.get("errorDescription")
            or data.get("errorCode")
            or f"errorId={error_id}"
        )
    error = data.get("error")
    if isinstance(error, str) and error:
        return error
    return ""


def _json_or_none(response: httpx.Response) -> Optional[dict[str, Any]]:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class ChallengeSolver:
    """Client for a CapSolver-compatible solving service.

    The client key is injected once at construction; an empty key raises
    :class:`ConfigurationError` immediately rather than on first use.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.capsolver.com",
        poll_interval: float = 1.0,
        max_poll_interval: float = 8.0,
        timeout: float = 120.0,
        max_protocol_errors: int = 3,
        request_timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError(
                "CAPSOLVER_API_KEY is not set; challenge solving is unavailable."
            )
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._poll_interval = poll_interval
        self._max_poll_interval = max(max_poll_interval, poll_interval)
        self._timeout = timeout
        self._max_protocol_errors = max(1, max_protocol_errors)
        self._request_timeout = request_timeout

    @classmethod
    def from_settings(cls, cfg: Settings) -> "ChallengeSolver":
        return cls(
            cfg.capsolver_api_key,
            base_url=cfg.capsolver_base_url,
            poll_interval=cfg.captcha_poll_interval,
            max_poll_interval=cfg.captcha_max_poll_interval,
            timeout=cfg.captcha_timeout,
            max_protocol_errors=cfg.captcha_max_protocol_errors,
            request_timeout=cfg.request_timeout,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{endpoint}"
        try:
            with httpx.Client(timeout=self._request_timeout) as client:
                response = client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            # CapSolver reports rejected requests as 4xx with an error body.
            error = _service_error(_json_or_none(exc.response))
            if error:
                raise ChallengeFailedError(f"{endpoint}: {error}") from exc
            raise TransportError(
                f"POST {url} returned HTTP {exc.response.status_code}",
                url=url,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"invalid solver URL {url!r}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {url} failed: {exc}", url=url) from exc

        data = _json_or_none(response)
        if data is None:
            raise ProtocolError(f"{endpoint}: response is not a JSON object")
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit_task(self, page_url: str, site_key: Optional[str] = None) -> ChallengeTask:
        """Create a proxyless reCAPTCHA v2 task for *page_url*.

        Raises:
            TransportError: If the request could not complete.
            ProtocolError: If the response carries no task identifier.
            ChallengeFailedError: If the service rejected the task.
        """
        task: dict[str, Any] = {"type": RECAPTCHA_V2_PROXYLESS, "websiteURL": page_url}
        if site_key:
            task["websiteKey"] = site_key

        data = self._post("createTask", {"clientKey": self._api_key, "task": task})

        error = _service_error(data)
        if error:
            raise ChallengeFailedError(f"createTask: {error}")
        task_id = data.get("taskId")
        if not isinstance(task_id, str) or not task_id:
            raise ProtocolError("createTask: response has no taskId")

        logger.info("challenge task %s created for %s", task_id, page_url)
        return ChallengeTask(task_id=task_id, website_url=page_url)

    def poll_once(self, task_id: str) -> ChallengeResolution:
        """Fetch the current state of *task_id* once.

        Raises:
            TransportError: If the request could not complete.
            ProtocolError: If the status is unknown or ``ready`` has no token.
        """
        data = self._post("getTaskResult", {"clientKey": self._api_key, "taskId": task_id})

        error = _service_error(data)
        status = data.get("status")
        if error or status == "failed":
            return ChallengeResolution(
                status=ChallengeStatus.FAILED, error=error or "task failed"
            )
        if status == "ready":
            solution = data.get("solution")
            token = solution.get("gRecaptchaResponse") if isinstance(solution, dict) else None
            if not isinstance(token, str) or not token:
                raise ProtocolError(f"getTaskResult: task {task_id} is ready without a token")
            return ChallengeResolution(status=ChallengeStatus.READY, token=token)
        if status in _PENDING_STATUSES:
            return ChallengeResolution(status=ChallengeStatus.PENDING)
        raise ProtocolError(f"getTaskResult: unexpected status {status!r}")

    def await_resolution(
        self,
        task_id: str,
        cancel: Optional[threading.Event] = None,
    ) -> ChallengeResolution:
        """Poll *task_id* until it is ready.

        Returns:
            A ``READY`` :class:`ChallengeResolution` carrying the token.

        Raises:
            ChallengeFailedError: The service reported the task as failed.
            ChallengeTimeoutError: ``timeout`` seconds elapsed first.
            ProtocolError: ``max_protocol_errors`` undecodable replies in a row.
            ScrapeCancelledError: *cancel* was set.
        """
        started = time.monotonic()
        deadline = started + self._timeout
        transport_failures = 0
        protocol_errors = 0

        while True:
            self._check_cancel(cancel)
            try:
                resolution = self.poll_once(task_id)
            except TransportError as exc:
                protocol_errors = 0
                transport_failures += 1
                delay = min(
                    self._poll_interval * 2 ** transport_failures,
                    self._max_poll_interval,
                )
                logger.warning(
                    "poll of task %s failed (%s); retrying in %.1fs", task_id, exc, delay
                )
            except ProtocolError as exc:
                transport_failures = 0
                protocol_errors += 1
                if protocol_errors >= self._max_protocol_errors:
                    raise
                delay = self._poll_interval
                logger.warning(
                    "undecodable result for task %s (%d/%d): %s",
                    task_id, protocol_errors, self._max_protocol_errors, exc,
                )
            else:
                if resolution.status is ChallengeStatus.READY:
                    logger.info(
                        "challenge task %s ready after %.1fs",
                        task_id, time.monotonic() - started,
                    )
                    return resolution
                if resolution.status is ChallengeStatus.FAILED:
                    raise ChallengeFailedError(
                        f"task {task_id} failed: {resolution.error}"
                    )
                transport_failures = protocol_errors = 0
                delay = self._poll_interval

            now = time.monotonic()
            if now >= deadline:
                raise ChallengeTimeoutError(
                    f"task {task_id} not resolved within {self._timeout:.0f}s",
                    task_id=task_id,
                    elapsed=now - started,
                )
            self._wait(min(delay, deadline - now), cancel)

    def solve(
        self,
        page_url: str,
        site_key: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """Submit a task for *page_url*, wait for it and return the token."""
        task = self.submit_task(page_url, site_key)
        return self.await_resolution(task.task_id, cancel).token

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_cancel(cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise ScrapeCancelledError("challenge polling cancelled by caller")

    @staticmethod
    def _wait(delay: float, cancel: Optional[threading.Event]) -> None:
        if cancel is None:
            time.sleep(delay)
        elif cancel.wait(delay):
            raise ScrapeCancelledError("challenge polling cancelled by caller")


def build_solver(cfg: Settings) -> Optional[ChallengeSolver]:
    """Return a solver for *cfg*, or ``None`` when no client key is configured."""
    if not cfg.capsolver_api_key:
        logger.warning(
            "CAPSOLVER_API_KEY is not set; pages behind a reCAPTCHA will fail to scrape"
        )
        return None
    return ChallengeSolver.from_settings(cfg)
