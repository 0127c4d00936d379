"""Scraper package — page fetch, challenge solving & content extraction."""

from threadscrape.scraper.comments import extract_post_id, fetch_comments, parse_listing
from threadscrape.scraper.extractor import detect_challenge, extract_heading
from threadscrape.scraper.fetcher import fetch_url
from threadscrape.scraper.models import Comment, FetchedPage, ScrapeResult
from threadscrape.scraper.pipeline import ScrapePipeline
from threadscrape.scraper.solver import ChallengeSolver, build_solver

__all__ = [
    "fetch_url",
    "detect_challenge",
    "extract_heading",
    "extract_post_id",
    "fetch_comments",
    "parse_listing",
    "ChallengeSolver",
    "build_solver",
    "ScrapePipeline",
    "Comment",
    "FetchedPage",
    "ScrapeResult",
]
