from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from tenant_graph.logging import JsonFormatter, LogConfig, PlainFormatter, setup_logging
from tenant_graph.util.serialization import REDACTED_VALUE, sanitize_for_json, stable_json_dumps


def test_sanitize_for_json_redacts_sensitive_fields() -> None:
    payload = {
        "password": "secret",
        "tokenValue": "abc",
        "nested": {"primaryAccessKey": "AAA", "connectionString": "Server=x", "safe": 1},
    }

    sanitized = sanitize_for_json(payload)

    assert sanitized["password"] == REDACTED_VALUE
    assert sanitized["tokenValue"] == REDACTED_VALUE
    assert sanitized["nested"]["primaryAccessKey"] == REDACTED_VALUE
    assert sanitized["nested"]["connectionString"] == REDACTED_VALUE
    assert sanitized["nested"]["safe"] == 1


def test_sanitize_for_json_handles_datetime_bytes_and_sets() -> None:
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    payload = {"when": ts, "blob": b"bytes", "zones": {"3", "1"}}

    sanitized = sanitize_for_json(payload)

    assert sanitized["when"] == "2024-01-01T00:00:00+00:00"
    assert sanitized["blob"] == "bytes"
    assert sanitized["zones"] == ["1", "3"]


def test_stable_json_dumps_sorts_keys() -> None:
    assert stable_json_dumps({"b": 1, "a": [2]}) == '{"a":[2],"b":1}'


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="unit",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_skips_non_serializable_extras() -> None:
    record = _record()
    record.good = {"a": 1, "b": [1, 2]}
    record.bad = {"obj": object()}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello"
    assert payload["good"] == {"a": 1, "b": [1, 2]}
    assert "bad" not in payload


def test_plain_formatter_prefixes_step_and_phase() -> None:
    record = _record("View build complete")
    record.step = "view"
    record.phase = "complete"
    record.duration_ms = 12

    line = PlainFormatter().format(record)

    assert "[view:complete] View build complete (duration_ms=12)" in line


def test_setup_logging_honors_json_env(monkeypatch) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    monkeypatch.setenv("TG_JSON_LOGS", "1")
    monkeypatch.setattr(setup_logging, "_configured", False, raising=False)
    try:
        setup_logging(LogConfig(level="DEBUG"))
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_setup_logging_installs_single_stderr_handler(monkeypatch) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    monkeypatch.delenv("TG_JSON_LOGS", raising=False)
    monkeypatch.setattr(setup_logging, "_configured", False, raising=False)
    try:
        setup_logging(LogConfig(level="WARNING"))
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr
        assert isinstance(root.handlers[0].formatter, PlainFormatter)
        assert logging.getLogger("pyarrow").level == logging.NOTSET
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
