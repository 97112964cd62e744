"""CloudWatch reporter for telemetry metric definitions.

Attach a MetricsReporter to the in-process telemetry bus; it aggregates
events per metric and dimension set and publishes bounded batches to
CloudWatch at least every push interval, or sooner when a batch is full.
"""

from reporter.aggregation.cache import MetricCache
from reporter.domain.definitions import (
    MetricDefinition,
    MetricKind,
    counter,
    distribution,
    last_value,
    summary,
)
from reporter.domain.definitions import sum as sum_metric
from reporter.domain.publisher import PublishError
from reporter.domain.records import OutputRecord
from reporter.infrastructure.telemetry.bus import TelemetryBus, default_bus
from reporter.services.dispatcher import MetricsReporter

__all__ = [
    "MetricCache",
    "MetricDefinition",
    "MetricKind",
    "MetricsReporter",
    "OutputRecord",
    "PublishError",
    "TelemetryBus",
    "counter",
    "default_bus",
    "distribution",
    "last_value",
    "sum_metric",
    "summary",
]
