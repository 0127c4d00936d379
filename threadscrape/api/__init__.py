"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from threadscrape.api import app

    uvicorn threadscrape.api:app --port 8080
"""

from threadscrape.api.app import app

__all__ = ["app"]
