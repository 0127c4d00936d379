"""Unit tests for the structured logging configuration."""

from __future__ import annotations

import json
import logging
from io import StringIO

import structlog

from threadscrape.logging_config import _redact_secrets, configure_logging


def _capture(log_level: str, emit) -> str:
    """Configure logging, run *emit*, and return what the root handler wrote."""
    configure_logging(log_level)

    buffer = StringIO()
    root = logging.getLogger()
    originals = []
    for handler in root.handlers:
        if isinstance(handler, logging.StreamHandler):
            originals.append((handler, handler.setStream(buffer)))

    try:
        emit()
    finally:
        for handler, stream in originals:
            handler.flush()
            handler.setStream(stream)

    return buffer.getvalue()


class TestConfigureLogging:
    def test_stdlib_records_render_as_json(self) -> None:
        output = _capture(
            "INFO",
            lambda: logging.getLogger("threadscrape.test").warning("comment fetch failed"),
        )
        record = json.loads(output.strip().splitlines()[-1])
        assert record["event"] == "comment fetch failed"
        assert record["level"] == "warning"
        assert record["logger"] == "threadscrape.test"
        assert "timestamp" in record

    def test_level_filters_records(self) -> None:
        output = _capture(
            "WARNING",
            lambda: logging.getLogger("threadscrape.test").info("hidden"),
        )
        assert "hidden" not in output

    def test_structlog_secret_keys_are_redacted(self) -> None:
        output = _capture(
            "INFO",
            lambda: structlog.get_logger("threadscrape.test").info(
                "createTask", clientKey="super-secret", task_type="ReCaptchaV2TaskProxyless"
            ),
        )
        assert "super-secret" not in output
        record = json.loads(output.strip().splitlines()[-1])
        assert record["clientKey"] == "[REDACTED]"
        assert record["task_type"] == "ReCaptchaV2TaskProxyless"

    def test_repeated_configuration_keeps_one_handler(self) -> None:
        configure_logging("INFO")
        configure_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1


class TestRedactSecrets:
    def test_nested_payload_is_redacted(self) -> None:
        event = {"event": "x", "payload": {"clientKey": "k", "taskId": "t"}}
        out = _redact_secrets(None, "info", event)
        assert out["payload"] == {"clientKey": "[REDACTED]", "taskId": "t"}

    def test_plain_keys_are_untouched(self) -> None:
        event = {"event": "x", "url": "https://example.com"}
        assert _redact_secrets(None, "info", dict(event)) == event
