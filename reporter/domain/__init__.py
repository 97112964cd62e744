from .definitions import (
    SUPPORTED_KINDS,
    MetricDefinition,
    MetricKind,
    counter,
    distribution,
    last_value,
    summary,
)
from .definitions import sum as sum_metric
from .publisher import Publisher, PublishError
from .records import OutputRecord

__all__ = [
    "MetricKind",
    "MetricDefinition",
    "SUPPORTED_KINDS",
    "OutputRecord",
    "Publisher",
    "PublishError",
    "counter",
    "sum_metric",
    "last_value",
    "summary",
    "distribution",
]
