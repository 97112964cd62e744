"""In-memory aggregation of telemetry events.

Events are folded into one accumulator per (definition, dimensions) key,
partitioned by metric kind:

    counter     -> int, +1 per admitted event
    sum         -> running total of the measurement
    last_value  -> most recent measurement
    summary     -> every measurement since the last drain, in order

The cache is owned by exactly one dispatch loop; nothing here locks.
"""

from __future__ import annotations

import math
import numbers
import time
from decimal import Decimal
from typing import Any, Iterable, Mapping

from reporter.core.logger import get_logger
from reporter.domain.definitions import SUPPORTED_KINDS, MetricDefinition, MetricKind
from reporter.domain.records import Dimensions, OutputRecord

from .tags import extract_dimensions

logger = get_logger("reporter.cache")

AggregationKey = tuple[MetricDefinition, Dimensions]

DEFAULT_STORAGE_RESOLUTION = 60

# CloudWatch unit names are the capitalised plural of these.
VALID_UNITS = frozenset(
    {
        "second",
        "microsecond",
        "millisecond",
        "byte",
        "kilobyte",
        "megabyte",
        "gigabyte",
        "terabyte",
        "bit",
        "kilobit",
        "megabit",
        "gigabit",
        "terabit",
    }
)

_SUFFIXES = {
    MetricKind.SUMMARY: ".summary",
    MetricKind.COUNTER: ".count",
    MetricKind.SUM: ".sum",
    MetricKind.LAST_VALUE: ".last_value",
}

# Drain order. Nothing downstream depends on it but it keeps batches stable.
DRAIN_ORDER = (
    MetricKind.SUMMARY,
    MetricKind.COUNTER,
    MetricKind.SUM,
    MetricKind.LAST_VALUE,
)


def cloudwatch_unit(unit: str | None) -> str:
    if unit in VALID_UNITS:
        return unit.capitalize() + "s"
    return "None"


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        return False
    return math.isfinite(value)


def validate_metrics(definitions: Iterable[MetricDefinition]) -> None:
    """Warn about definitions this reporter cannot aggregate.

    Unsupported definitions are kept; their events are ignored on push.
    """
    for definition in definitions:
        if definition.kind not in SUPPORTED_KINDS:
            logger.warning(
                "unsupported_metric_kind",
                extra={
                    "metric": definition.dotted_name,
                    "kind": definition.kind.value,
                },
            )


class MetricCache:
    def __init__(
        self,
        namespace: str = "Telemetry",
        push_interval: float = 60.0,
        sample_rate: float = 1.0,
        last_flush: float | None = None,
    ):
        self.namespace = namespace
        self.push_interval = push_interval
        self.sample_rate = sample_rate
        self.last_flush = time.monotonic() if last_flush is None else last_flush
        self.event_names: list[tuple[str, ...]] = []
        self._buckets: dict[MetricKind, dict[AggregationKey, Any]] = {
            kind: {} for kind in DRAIN_ORDER
        }

    @property
    def summaries(self) -> dict[AggregationKey, list[float]]:
        return self._buckets[MetricKind.SUMMARY]

    @property
    def counters(self) -> dict[AggregationKey, int]:
        return self._buckets[MetricKind.COUNTER]

    @property
    def sums(self) -> dict[AggregationKey, float]:
        return self._buckets[MetricKind.SUM]

    @property
    def last_values(self) -> dict[AggregationKey, float]:
        return self._buckets[MetricKind.LAST_VALUE]

    def push(
        self,
        measurements: Mapping[str, Any],
        metadata: Mapping[str, Any],
        definition: MetricDefinition,
    ) -> bool:
        """Fold one event into the cache.

        Returns True when an accumulator changed. Filtered, absent and
        non-numeric measurements leave the cache untouched, as does any
        exception raised by the definition's own functions or while keying
        it (an unhashable reporter option, say).
        """
        try:
            measurement = definition.extract_measurement(measurements)
            if not _admitted(definition, metadata):
                return False
            if measurement is None:
                return False
            if not is_numeric(measurement):
                logger.warning(
                    "non_numeric_measurement",
                    extra={
                        "metric": definition.dotted_name,
                        "kind": definition.kind.value,
                        "value": repr(measurement),
                    },
                )
                return False
            dimensions = extract_dimensions(definition, metadata)
            folded = self._fold(
                (definition, dimensions), definition.kind, float(measurement)
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "metric_processing_failed",
                extra={
                    "metric": definition.dotted_name,
                    "kind": definition.kind.value,
                },
            )
            return False

        if folded:
            logger.debug(
                "measurement_received",
                extra={
                    "metric": definition.dotted_name,
                    "kind": definition.kind.value,
                    "value": measurement,
                    "dimensions": dict(dimensions),
                },
            )
        return folded

    def _fold(self, key: AggregationKey, kind: MetricKind, measurement: float) -> bool:
        if kind is MetricKind.COUNTER:
            self.counters[key] = self.counters.get(key, 0) + 1
        elif kind is MetricKind.SUM:
            self.sums[key] = self.sums.get(key, 0) + measurement
        elif kind is MetricKind.LAST_VALUE:
            self.last_values[key] = measurement
        elif kind is MetricKind.SUMMARY:
            self.summaries.setdefault(key, []).append(measurement)
        else:
            return False
        return True

    def metric_count(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def max_values_per_metric(self) -> int:
        # Only summaries hold more than one point per key.
        if not self.summaries:
            return min(self.metric_count(), 1)
        return max(len(values) for values in self.summaries.values())

    def drain(self) -> list[OutputRecord]:
        """Convert every accumulator to an OutputRecord and empty the cache.

        The flush clock is left alone; stamping it is the caller's job.
        """
        records: list[OutputRecord] = []
        for kind in DRAIN_ORDER:
            bucket = self._buckets[kind]
            for (definition, dimensions), accumulated in bucket.items():
                try:
                    record = _to_record(kind, definition, dimensions, accumulated)
                except Exception:  # noqa: BLE001
                    logger.exception(
                        "record_conversion_failed",
                        extra={"metric": definition.dotted_name, "kind": kind.value},
                    )
                    continue
                records.append(record)
            bucket.clear()
        return records


def _admitted(definition: MetricDefinition, metadata: Mapping[str, Any]) -> bool:
    if definition.keep is not None:
        return bool(definition.keep(metadata))
    if definition.drop is not None:
        return not definition.drop(metadata)
    return True


def _to_record(
    kind: MetricKind,
    definition: MetricDefinition,
    dimensions: Dimensions,
    accumulated: Any,
) -> OutputRecord:
    name = definition.dotted_name + _SUFFIXES[kind]
    unit = "Count" if kind is MetricKind.COUNTER else cloudwatch_unit(definition.unit)
    resolution = definition.option("storage_resolution", DEFAULT_STORAGE_RESOLUTION)
    if kind is MetricKind.SUMMARY:
        return OutputRecord(
            metric_name=name,
            values=list(accumulated),
            dimensions=dimensions,
            unit=unit,
            storage_resolution=resolution,
        )
    return OutputRecord(
        metric_name=name,
        value=accumulated,
        dimensions=dimensions,
        unit=unit,
        storage_resolution=resolution,
    )
