from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from reporter.domain.publisher import PublishError
from reporter.domain.records import OutputRecord
from reporter.infrastructure.cloudwatch.publisher import CloudWatchPublisher, to_metric_datum


def _summary_record():
    return OutputRecord(
        metric_name="db.query.duration.summary",
        values=[1.0, 2.5],
        dimensions=(("table", "users"),),
        unit="Milliseconds",
        storage_resolution=1,
    )


def test_to_metric_datum_for_scalar_record():
    record = OutputRecord(metric_name="http.request.count", value=3, unit="Count")

    assert to_metric_datum(record) == {
        "MetricName": "http.request.count",
        "Dimensions": [],
        "Unit": "Count",
        "StorageResolution": 60,
        "Value": 3.0,
    }


def test_to_metric_datum_for_summary_record():
    datum = to_metric_datum(_summary_record())

    assert datum["Values"] == [1.0, 2.5]
    assert "Value" not in datum
    assert datum["Dimensions"] == [{"Name": "table", "Value": "users"}]
    assert datum["StorageResolution"] == 1


def test_send_puts_metric_data(mock_cloudwatch_client):
    publisher = CloudWatchPublisher(client=mock_cloudwatch_client)

    publisher.send([_summary_record()], "MyApp")

    mock_cloudwatch_client.put_metric_data.assert_called_once()
    kwargs = mock_cloudwatch_client.put_metric_data.call_args.kwargs
    assert kwargs["Namespace"] == "MyApp"
    assert [d["MetricName"] for d in kwargs["MetricData"]] == ["db.query.duration.summary"]


def test_send_empty_batch_is_a_no_op(mock_cloudwatch_client):
    CloudWatchPublisher(client=mock_cloudwatch_client).send([], "MyApp")

    mock_cloudwatch_client.put_metric_data.assert_not_called()


def test_client_error_becomes_publish_error(mock_cloudwatch_client):
    mock_cloudwatch_client.put_metric_data.side_effect = ClientError(
        {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}}, "PutMetricData"
    )
    publisher = CloudWatchPublisher(client=mock_cloudwatch_client)

    with pytest.raises(PublishError) as excinfo:
        publisher.send([_summary_record(), _summary_record()], "MyApp")

    assert excinfo.value.count == 2
    assert excinfo.value.namespace == "MyApp"
    assert isinstance(excinfo.value.__cause__, ClientError)


def test_connection_error_becomes_publish_error(mock_cloudwatch_client):
    mock_cloudwatch_client.put_metric_data.side_effect = EndpointConnectionError(
        endpoint_url="https://monitoring.eu-west-1.amazonaws.com"
    )

    with pytest.raises(PublishError):
        CloudWatchPublisher(client=mock_cloudwatch_client).send([_summary_record()], "MyApp")


@patch("reporter.infrastructure.cloudwatch.publisher.boto3")
def test_builds_compressing_client_from_settings(mock_boto3, monkeypatch):
    from reporter.core import config as cfg

    monkeypatch.setattr(cfg.settings, "aws_region", "eu-west-1")
    monkeypatch.setattr(cfg.settings, "cloudwatch_endpoint_url", "http://localhost:4566")

    CloudWatchPublisher()

    args, kwargs = mock_boto3.client.call_args
    assert args == ("cloudwatch",)
    assert kwargs["region_name"] == "eu-west-1"
    assert kwargs["endpoint_url"] == "http://localhost:4566"
    assert kwargs["config"].disable_request_compression is False


def test_close_closes_client(mock_cloudwatch_client):
    CloudWatchPublisher(client=mock_cloudwatch_client).close()

    mock_cloudwatch_client.close.assert_called_once()
