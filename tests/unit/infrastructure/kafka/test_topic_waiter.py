from unittest.mock import MagicMock, patch

import pytest
from reporter.infrastructure.kafka.topic_waiter import ensure_topics_available


def _metadata(*topics):
    md = MagicMock()
    md.topics = {t: object() for t in topics}
    return md


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("reporter.infrastructure.kafka.topic_waiter.time.sleep") as sleep:
        yield sleep


def test_returns_when_topics_exist():
    admin = MagicMock()
    admin.list_topics.return_value = _metadata("telemetry_events", "other")

    ensure_topics_available(["telemetry_events"], admin_client=admin)

    admin.list_topics.assert_called_once()


def test_retries_until_topics_appear(no_sleep):
    admin = MagicMock()
    admin.list_topics.side_effect = [
        _metadata(),
        RuntimeError("broker down"),
        _metadata("telemetry_events"),
    ]

    ensure_topics_available(["telemetry_events"], initial_delay=1, admin_client=admin)

    assert admin.list_topics.call_count == 3
    assert no_sleep.call_count == 2


def test_raises_after_max_retries():
    admin = MagicMock()
    admin.list_topics.return_value = _metadata()

    with pytest.raises(RuntimeError, match="not available after 3 attempts"):
        ensure_topics_available(["telemetry_events"], max_retries=3, admin_client=admin)
