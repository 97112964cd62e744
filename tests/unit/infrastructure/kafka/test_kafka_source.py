import json
from unittest.mock import MagicMock, patch

import pytest
from confluent_kafka import KafkaError, KafkaException
from reporter.infrastructure.kafka.source import KafkaEventSource


def _message(payload, error=None, topic="telemetry_events"):
    msg = MagicMock()
    msg.error.return_value = error
    msg.topic.return_value = topic
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    msg.value.return_value = raw
    return msg


def _error(code):
    err = MagicMock()
    err.code.return_value = code
    return err


@pytest.fixture
def consumer():
    with patch("reporter.infrastructure.kafka.source.Consumer") as consumer_cls:
        yield consumer_cls.return_value


def test_subscribes_to_topics(consumer, bus):
    KafkaEventSource(["telemetry_events"], bus=bus)

    consumer.subscribe.assert_called_once_with(["telemetry_events"])


def test_emits_valid_messages_on_bus(consumer, bus):
    seen = []
    bus.attach("h", "http.request", lambda *args: seen.append(args))
    consumer.consume.return_value = [
        _message({"event": "http.request", "measurements": {"duration": 5}, "metadata": {"route": "/"}}),
        _message({"event": ["http", "request"], "measurements": {"duration": 7}}),
    ]
    source = KafkaEventSource(["telemetry_events"], bus=bus)

    assert source.poll_once() == 2
    assert seen == [
        (("http", "request"), {"duration": 5}, {"route": "/"}, None),
        (("http", "request"), {"duration": 7}, {}, None),
    ]


def test_invalid_messages_are_skipped(consumer, bus, caplog):
    consumer.consume.return_value = [
        _message(b"not json"),
        _message({"event": "", "measurements": {}}),
        _message({"measurements": {"v": 1}}),
        _message(b"\xff\xfe"),
        _message({"event": "a.b", "measurements": {"v": 1}}),
    ]
    source = KafkaEventSource(["telemetry_events"], bus=bus)

    assert source.poll_once() == 1
    warnings = [r for r in caplog.records if r.getMessage() == "invalid_telemetry_message"]
    assert len(warnings) == 4


def test_partition_eof_is_skipped_and_other_errors_raise(consumer, bus):
    source = KafkaEventSource(["telemetry_events"], bus=bus)

    consumer.consume.return_value = [_message({}, error=_error(KafkaError._PARTITION_EOF))]
    assert source.poll_once() == 0

    consumer.consume.return_value = [_message({}, error=_error(KafkaError._TRANSPORT))]
    with pytest.raises(KafkaException):
        source.poll_once()


def test_empty_poll(consumer, bus):
    consumer.consume.return_value = []

    assert KafkaEventSource(["t"], bus=bus).poll_once() == 0


def test_commit_only_after_consuming(consumer, bus):
    source = KafkaEventSource(["t"], bus=bus)

    source.commit()
    consumer.commit.assert_not_called()

    consumer.consume.return_value = [_message({"event": "a.b", "measurements": {}})]
    source.poll_once()
    source.commit()
    source.commit()

    consumer.commit.assert_called_once_with(asynchronous=False)


def test_close(consumer, bus):
    KafkaEventSource(["t"], bus=bus).close()

    consumer.close.assert_called_once()
