"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging

from app.core.logger import JSONFormatter, configure_logging


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""
    configure_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    configure_logging("WARNING")


def test_json_formatter_copies_known_extras() -> None:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "cart.updated", None, None)
    record.account_id = 42
    record.request_id = "req-1"
    record.unrelated = "ignored"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "cart.updated"
    assert payload["account_id"] == 42
    assert payload["request_id"] == "req-1"
    assert "unrelated" not in payload
