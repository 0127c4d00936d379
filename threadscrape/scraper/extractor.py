"""Markup queries over a :class:`FetchedPage`: title heading and challenge marker."""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup

from threadscrape.scraper.models import FetchedPage

_HEADING_SELECTOR = "h1[slot='title']"
_CHALLENGE_SELECTOR = "div.g-recaptcha"


def _soup(page: FetchedPage) -> BeautifulSoup:
    return BeautifulSoup(page.content, "html.parser")


def extract_heading(page: FetchedPage) -> str:
    """Return the text of the page's ``<h1 slot="title">``, or empty string.

    Only the text is kept: inner markup is dropped and whitespace around the
    heading (the indentation of the element in the markup) is removed.  Inner
    whitespace is left as is.  An empty string is a normal outcome for pages
    without the heading.
    """
    heading = _soup(page).select_one(_HEADING_SELECTOR)
    if heading is None:
        return ""
    return heading.get_text().strip()


def detect_challenge(page: FetchedPage) -> Optional[str]:
    """Return the reCAPTCHA site key if the page carries a challenge, else ``None``.

    The marker is a ``div.g-recaptcha`` exposing ``data-sitekey``.  A missing
    container and a container without a site key both mean "no challenge".
    """
    for container in _soup(page).select(_CHALLENGE_SELECTOR):
        site_key = container.get("data-sitekey")
        if isinstance(site_key, str) and site_key.strip():
            return site_key.strip()
    return None
