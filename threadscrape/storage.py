"""JSON file sink for the latest scrape result.

Every save replaces the stored record entirely; there is no history.

Usage::

    from threadscrape.storage import load_result, save_result

    save_result(result)            # settings.results_path
    latest = load_result()
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from threadscrape.config import settings
from threadscrape.exceptions import FormatError
from threadscrape.scraper.models import ScrapeResult


def save_result(result: ScrapeResult, path: Optional[Path] = None) -> Path:
    """Write *result* to *path* (default ``settings.results_path``) atomically.

    The record is written to a temporary file next to the target and then
    moved over it, so readers never observe a half-written file.

    Returns:
        The path written.
    """
    if path is None:
        settings.ensure_workspace()
        path = settings.results_path
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(result.to_dict(), fh, ensure_ascii=False)
            fh.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def load_result(path: Optional[Path] = None) -> ScrapeResult:
    """Read back the result stored at *path* (default ``settings.results_path``).

    Raises:
        FileNotFoundError: If nothing has been saved yet.
        FormatError: If the file is not a valid result record.
    """
    path = Path(path) if path is not None else settings.results_path
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FormatError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise FormatError(f"{path} does not hold a result object")
    return ScrapeResult.from_dict(data)
