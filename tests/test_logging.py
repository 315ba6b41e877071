"""
Tests for the JSON log formatter.
"""
import json
import logging

from habitrollup.core.logging import JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("habitrollup.test", logging.INFO, __file__, 1, "Entry upserted", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_single_line_json_with_habit_extras():
    out = JSONFormatter().format(_record(habit_user_id="u1", habit_id=3, other="dropped"))
    assert "\n" not in out
    payload = json.loads(out)
    assert payload["message"] == "Entry upserted"
    assert payload["level"] == "INFO"
    assert payload["habit_user_id"] == "u1"
    assert payload["habit_id"] == 3
    assert "other" not in payload


def test_setup_logging_replaces_handlers():
    root = logging.getLogger()
    saved = root.handlers[:]
    try:
        setup_logging("json", "DEBUG")
        setup_logging("text", "INFO")
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in saved:
            root.addHandler(handler)
