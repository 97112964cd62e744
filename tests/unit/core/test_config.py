import pytest
from pydantic import ValidationError
from reporter.core.config import Settings


def test_defaults(monkeypatch):
    for var in ("REPORTER_NAMESPACE", "REPORTER_PUSH_INTERVAL_MS", "REPORTER_SAMPLE_RATE"):
        monkeypatch.delenv(var, raising=False)

    s = Settings()

    assert s.reporter_namespace == "Telemetry"
    assert s.reporter_push_interval_ms == 60_000
    assert s.reporter_sample_rate == 1.0
    assert s.reporter_flush_on_shutdown is False
    assert s.kafka_consumer_topics == ["telemetry_events"]
    assert s.otel_service_name == "reporter"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("REPORTER_NAMESPACE", "Checkout")
    monkeypatch.setenv("REPORTER_PUSH_INTERVAL_MS", "5000")
    monkeypatch.setenv("REPORTER_SAMPLE_RATE", "0.25")
    monkeypatch.setenv("REPORTER_PUBLISHER", "logging")
    monkeypatch.setenv("APP_LOG_LEVEL", "DEBUG")

    s = Settings()

    assert s.reporter_namespace == "Checkout"
    assert s.reporter_push_interval_ms == 5000
    assert s.reporter_sample_rate == 0.25
    assert s.reporter_publisher == "logging"
    assert s.app_log_level == "DEBUG"


@pytest.mark.parametrize(
    "var,value",
    [
        ("REPORTER_SAMPLE_RATE", "1.5"),
        ("REPORTER_PUSH_INTERVAL_MS", "0"),
        ("REPORTER_PUBLISHER", "statsd"),
    ],
)
def test_invalid_values_rejected(monkeypatch, var, value):
    monkeypatch.setenv(var, value)

    with pytest.raises(ValidationError):
        Settings()
