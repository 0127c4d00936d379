"""Endpoint groups mounted by :func:`threadscrape.api.app.create_app`."""
