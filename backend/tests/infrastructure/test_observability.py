"""Structured Logging — tests for the JSON formatter and handler setup.

Tests cover:
    - JSON lines carry level, logger, message, and known extra fields
    - Unknown extras are not surfaced; non-JSON values are stringified
    - Repeated setup_logging does not stack handlers
"""

import json
import logging

from neuronkeeper.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("neuronkeeper.test", logging.INFO, __file__, 1,
                               "hello %s", ("world",), None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_extras():
    line = JSONFormatter().format(_record(neuron_id="ab", nonce=3, secret="x"))
    data = json.loads(line)
    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["neuron_id"] == "ab"
    assert data["nonce"] == 3
    assert "secret" not in data


def test_json_formatter_stringifies_unknown_types():
    data = json.loads(JSONFormatter().format(_record(step=b"\x01")))
    assert data["step"] == str(b"\x01")


def test_setup_logging_replaces_own_handler():
    setup_logging("DEBUG", "text")
    setup_logging("INFO", "json")
    ours = [h for h in logging.root.handlers if h.get_name() == "neuronkeeper"]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, JSONFormatter)
    logging.root.removeHandler(ours[0])
