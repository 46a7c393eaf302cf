"""Tests for shared.logging."""
import json
import logging

from shared.logging import StructuredFormatter, parse_level


def _record(msg="Resolving wager", **extra):
    record = logging.LogRecord("execution.resolver", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_extra_fields():
    line = StructuredFormatter().format(_record(wager_id=7, end_price=9_530_050_000_000))
    data = json.loads(line)
    assert data["message"] == "Resolving wager"
    assert data["level"] == "INFO"
    assert data["wager_id"] == 7
    assert data["end_price"] == 9_530_050_000_000
    assert "timestamp" in data


def test_parse_level():
    assert parse_level("debug") == logging.DEBUG
    assert parse_level("WARN") == logging.WARNING
    assert parse_level("nonsense") == logging.INFO
    assert parse_level(logging.ERROR) == logging.ERROR
