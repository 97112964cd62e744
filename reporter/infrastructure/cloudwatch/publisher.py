"""CloudWatch PutMetricData publisher."""

from __future__ import annotations

from typing import Any, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from reporter.core.config import settings
from reporter.domain.publisher import PublishError
from reporter.domain.records import OutputRecord

# PutMetricData bodies are gzip-compressed by botocore above this size.
_COMPRESSION_THRESHOLD_BYTES = 1024


def to_metric_datum(record: OutputRecord) -> dict[str, Any]:
    datum: dict[str, Any] = {
        "MetricName": record.metric_name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in record.dimensions],
        "Unit": record.unit,
        "StorageResolution": record.storage_resolution,
    }
    if record.values is not None:
        datum["Values"] = list(record.values)
    else:
        datum["Value"] = record.value
    return datum


class CloudWatchPublisher:
    def __init__(
        self,
        client: Any = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ):
        self.client = client or boto3.client(
            "cloudwatch",
            region_name=region_name or settings.aws_region,
            endpoint_url=endpoint_url or settings.cloudwatch_endpoint_url,
            config=Config(
                disable_request_compression=False,
                request_min_compression_size_bytes=_COMPRESSION_THRESHOLD_BYTES,
            ),
        )

    def send(self, batch: Sequence[OutputRecord], namespace: str) -> None:
        if not batch:
            return
        metric_data = [to_metric_datum(record) for record in batch]
        try:
            self.client.put_metric_data(Namespace=namespace, MetricData=metric_data)
        except (BotoCoreError, ClientError) as exc:
            raise PublishError(str(exc), count=len(batch), namespace=namespace) from exc

    def close(self) -> None:
        close_fn = getattr(self.client, "close", None)
        if callable(close_fn):
            close_fn()
