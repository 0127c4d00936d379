"""Centralised settings for the threadscrape backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / result sink
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("THREADSCRAPE_WORKSPACE", Path.home() / ".threadscrape")
        )
    )

    @property
    def results_path(self) -> Path:
        """Absolute path to the JSON file holding the latest scrape result."""
        return self.workspace_dir / "scrape_results.json"

    # ------------------------------------------------------------------
    # Page + comment transport
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get("SCRAPER_USER_AGENT", _CHROME_UA)
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    comments_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "COMMENTS_BASE_URL", "https://www.reddit.com/comments"
        )
    )

    # ------------------------------------------------------------------
    # CapSolver challenge solving
    # ------------------------------------------------------------------
    capsolver_api_key: str = field(
        default_factory=lambda: os.environ.get("CAPSOLVER_API_KEY", "")
    )
    capsolver_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "CAPSOLVER_BASE_URL", "https://api.capsolver.com"
        )
    )
    captcha_poll_interval: float = field(
        default_factory=lambda: float(os.environ.get("CAPTCHA_POLL_INTERVAL", "1.0"))
    )
    captcha_max_poll_interval: float = field(
        default_factory=lambda: float(os.environ.get("CAPTCHA_MAX_POLL_INTERVAL", "8.0"))
    )
    captcha_timeout: float = field(
        default_factory=lambda: float(os.environ.get("CAPTCHA_TIMEOUT", "120.0"))
    )
    captcha_max_protocol_errors: int = field(
        default_factory=lambda: int(os.environ.get("CAPTCHA_MAX_PROTOCOL_ERRORS", "3"))
    )
    resubmit_challenge_token: bool = field(
        default_factory=lambda: _env_bool("RESUBMIT_CHALLENGE_TOKEN", "true")
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton; import this everywhere:
#   from threadscrape.config import settings
settings = Settings()
