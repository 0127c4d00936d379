"""Scrape orchestration: fetch → challenge → heading → comments → result.

Each call to :meth:`ScrapePipeline.scrape` owns its whole flow; the pipeline
object only carries configuration and the (stateless) solver, so one instance
can serve concurrent requests.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Optional

from threadscrape.config import Settings
from threadscrape.exceptions import ConfigurationError, ScrapeError
from threadscrape.scraper.comments import extract_post_id, fetch_comments
from threadscrape.scraper.extractor import detect_challenge, extract_heading
from threadscrape.scraper.fetcher import fetch_url
from threadscrape.scraper.models import Comment, FetchedPage, ScrapeResult
from threadscrape.scraper.solver import ChallengeSolver

logger = logging.getLogger(__name__)

TOKEN_PARAM = "g-recaptcha-response"


class ScrapePipeline:
    """Runs one scrape end-to-end.

    Args:
        cfg: Transport and challenge settings.
        solver: Challenge solver, or ``None`` when no CapSolver key is
            configured; a page behind a challenge then raises
            :class:`ConfigurationError`.
    """

    def __init__(self, cfg: Settings, solver: Optional[ChallengeSolver] = None) -> None:
        self._cfg = cfg
        self._solver = solver

    def _fetch(self, url: str, token: Optional[str] = None) -> FetchedPage:
        return fetch_url(
            url,
            params={TOKEN_PARAM: token} if token else None,
            user_agent=self._cfg.user_agent,
            timeout=self._cfg.request_timeout,
        )

    def _pass_challenge(
        self,
        page: FetchedPage,
        site_key: str,
        cancel: Optional[threading.Event],
    ) -> FetchedPage:
        if self._solver is None:
            raise ConfigurationError(
                f"{page.url} is behind a reCAPTCHA but CAPSOLVER_API_KEY is not set"
            )
        logger.info("reCAPTCHA detected on %s (site key %s)", page.url, site_key)
        token = self._solver.solve(page.url, site_key, cancel)

        if not self._cfg.resubmit_challenge_token:
            return page
        retried = self._fetch(page.url, token)
        if detect_challenge(retried) is not None:
            logger.warning("challenge still present on %s after resubmitting token", page.url)
        return retried

    def _comments(self, url: str) -> list[Comment]:
        post_id = extract_post_id(url)
        try:
            return fetch_comments(
                post_id,
                base_url=self._cfg.comments_base_url,
                user_agent=self._cfg.user_agent,
                timeout=self._cfg.request_timeout,
            )
        except ScrapeError as exc:
            logger.warning("comment fetch failed for post %s: %s", post_id, exc)
            return []

    def scrape(self, url: str, cancel: Optional[threading.Event] = None) -> ScrapeResult:
        """Scrape *url* and return the assembled :class:`ScrapeResult`.

        Raises:
            TransportError / ProtocolError: The page could not be fetched.
            FormatError: *url* has no ``comments/<id>`` segment.
            ConfigurationError: A challenge was found but no solver is configured.
            ChallengeFailedError / ChallengeTimeoutError: The challenge was not solved.
            ScrapeCancelledError: *cancel* was set while solving.
        """
        started = time.perf_counter()

        page = self._fetch(url)
        site_key = detect_challenge(page)
        if site_key is not None:
            page = self._pass_challenge(page, site_key, cancel)

        heading = extract_heading(page)
        comments = self._comments(url)

        elapsed = timedelta(seconds=time.perf_counter() - started)
        logger.info(
            "scraped %s in %.3fs (%d comment(s))", url, elapsed.total_seconds(), len(comments)
        )
        return ScrapeResult(
            url=url,
            elapsed=elapsed,
            heading=heading,
            comments=tuple(comments),
            html=page.html,
        )
