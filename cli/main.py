"""threadscrape CLI — entry-point for scraping from the terminal.

Usage:
    python cli/main.py --help

Commands:
    scrape   → run the scrape pipeline against one URL
    show     → print the last persisted scrape result
    serve    → run the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that
# `from threadscrape.xxx import ...` works when the CLI is invoked as
# `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from threadscrape.config import settings
from threadscrape.exceptions import ScrapeError
from threadscrape.logging_config import configure_logging
from threadscrape.scraper.models import ScrapeResult
from threadscrape.scraper.pipeline import ScrapePipeline
from threadscrape.scraper.solver import build_solver
from threadscrape.storage import load_result, save_result

app = typer.Typer(
    name="threadscrape",
    help="threadscrape CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Override LOG_LEVEL."),
) -> None:
    """Scrape discussion pages, solving reCAPTCHA challenges when needed."""
    configure_logging(log_level or settings.log_level)


def _print_summary(prefix: str, result: ScrapeResult) -> None:
    typer.echo(f"[{prefix}] URL      : {result.url}")
    typer.echo(f"[{prefix}] Time     : {result.to_dict()['time']}")
    typer.echo(f"[{prefix}] Heading  : {result.heading or '(none)'}")
    typer.echo(f"[{prefix}] Comments : {len(result.comments)}")
    for comment in result.comments:
        typer.echo(f"  {comment.comment_id}  {comment.body[:100]!r}")


# ---------------------------------------------------------------------------
# Scrape commands
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="Discussion page URL to scrape."),
    save: bool = typer.Option(True, "--save/--no-save", help="Persist the result."),
    as_json: bool = typer.Option(False, "--json", help="Print the full JSON record."),
) -> None:
    """Scrape a URL and print its heading and first comments."""
    pipeline = ScrapePipeline(settings, build_solver(settings))

    typer.echo(f"[scrape] Fetching {url!r} …", err=True)
    try:
        result = pipeline.scrape(url)
    except ScrapeError as exc:
        typer.echo(f"[scrape] Failed: {exc}", err=True)
        raise typer.Exit(1) from exc

    if save:
        path = save_result(result)
        typer.echo(f"[scrape] Saved to {path}", err=True)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_summary("scrape", result)


@app.command("show")
def show(
    path: Optional[Path] = typer.Option(None, help="Result file (defaults to the workspace one)."),
) -> None:
    """Print the last persisted scrape result."""
    try:
        result = load_result(path)
    except FileNotFoundError:
        typer.echo("[show] No scrape result stored yet.")
        raise typer.Exit(1)
    except ScrapeError as exc:
        typer.echo(f"[show] Stored result is unreadable: {exc}")
        raise typer.Exit(1) from exc
    _print_summary("show", result)


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address."),
    port: int = typer.Option(8080, help="Bind port."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    typer.echo(f"[serve] Starting server on {host}:{port} …")
    uvicorn.run("threadscrape.api.app:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
