from unittest.mock import MagicMock

import pytest
from reporter.infrastructure.telemetry.bus import TelemetryBus


class RecordingPublisher:
    """Publisher double that keeps every batch it is handed."""

    def __init__(self, error: Exception | None = None):
        self.batches = []
        self.error = error

    def send(self, batch, namespace):
        self.batches.append((namespace, list(batch)))
        if self.error is not None:
            raise self.error

    @property
    def records(self):
        return [r for _, batch in self.batches for r in batch]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def bus():
    return TelemetryBus()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_cloudwatch_client():
    """Mock boto3 CloudWatch client for unit tests"""
    client = MagicMock()
    client.put_metric_data = MagicMock(return_value={})
    return client
