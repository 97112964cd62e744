from typing import Literal

from pydantic import Field

from shared.config import BaseServiceConfig
from shared.constants import Topics


class Settings(BaseServiceConfig):
    # Reporter
    reporter_namespace: str = "Telemetry"
    reporter_push_interval_ms: int = Field(default=60_000, gt=0)
    reporter_sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    # "package.module:attribute" -> list of definitions or a callable returning one
    reporter_metrics: str | None = None
    reporter_flush_on_shutdown: bool = False
    reporter_publisher: Literal["cloudwatch", "logging"] = "cloudwatch"

    # Kafka event source
    kafka_consumer_topics: list[str] = Topics.all_topics()
    reporter_kafka_consumer_group: str = "telemetry-reporter"
    reporter_poll_batch_size: int = 500
    reporter_poll_interval_seconds: float = 1.0

    # CloudWatch
    aws_region: str | None = None
    cloudwatch_endpoint_url: str | None = None

    # Health / metrics
    metrics_port: int = 8001
    health_port: int = 8081

    otel_service_name: str = "reporter"


settings = Settings()
