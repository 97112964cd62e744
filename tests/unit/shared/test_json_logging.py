import json
import logging
import sys

import pytest
from shared.logging.json import CustomJsonFormatter, SensitiveDataFilter, configure_logging
from shared.logging.logger import is_configured


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def _record(msg="event_name", exc_info=None, **extra):
    record = logging.LogRecord("reporter.test", logging.INFO, __file__, 1, msg, (), exc_info)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_sensitive_data_filter_redacts_nested_keys():
    f = SensitiveDataFilter(["token", "secret"])

    out = f.filter({"api_token": "abc", "nested": {"client_secret": "x", "ok": 1}, "n": 2})

    assert out == {"api_token": "[REDACTED]", "nested": {"client_secret": "[REDACTED]", "ok": 1}, "n": 2}


def test_formatter_emits_json_with_extra_fields():
    formatter = CustomJsonFormatter("reporter", "test", ["password"])

    data = json.loads(formatter.format(_record(count=3, password="hunter2")))

    assert data["message"] == "event_name"
    assert data["level"] == "INFO"
    assert data["logger"] == "reporter.test"
    assert data["service"] == "reporter"
    assert data["environment"] == "test"
    assert data["count"] == 3
    assert data["password"] == "[REDACTED]"
    assert "exception" not in data


def test_formatter_includes_exception():
    formatter = CustomJsonFormatter("reporter", "test", [])
    try:
        raise ValueError("bad value")
    except ValueError:
        exc_info = sys.exc_info()

    data = json.loads(formatter.format(_record(exc_info=exc_info)))

    assert data["exception"]["type"] == "ValueError"
    assert data["exception"]["message"] == "bad value"
    assert data["exception"]["stack"]


def test_configure_logging_installs_single_json_handler(restore_root_logger):
    root = configure_logging("reporter", "test", "debug", ["secret"])

    assert root is restore_root_logger
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, CustomJsonFormatter)
    assert root.level == logging.DEBUG
    assert is_configured()
