"""Metric definitions.

A definition names a metric, says which telemetry event feeds it, how to
pick the numeric measurement out of the event and which metadata keys
become dimensions. Definitions are frozen and hashable because they are
part of the aggregation key; callables compare by identity, so redefining
a metric with a new function yields a distinct key.

    counter("http.request.count")
    summary("db.query.total_time", unit=("nanosecond", "millisecond"))
    last_value("vm.memory.total", unit="byte", tags=["node"])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

Measurement = Union[str, Callable[[Mapping[str, Any]], Any]]
Predicate = Callable[[Mapping[str, Any]], bool]
TagValues = Callable[[Mapping[str, Any]], Mapping[str, Any]]

TIME_UNITS: dict[str, int] = {
    "nanosecond": 1,
    "microsecond": 1_000,
    "millisecond": 1_000_000,
    "second": 1_000_000_000,
}


class MetricKind(str, Enum):
    COUNTER = "counter"
    SUM = "sum"
    LAST_VALUE = "last_value"
    SUMMARY = "summary"
    DISTRIBUTION = "distribution"


SUPPORTED_KINDS = frozenset(
    {MetricKind.COUNTER, MetricKind.SUM, MetricKind.LAST_VALUE, MetricKind.SUMMARY}
)


def identity_tag_values(metadata: Mapping[str, Any]) -> Mapping[str, Any]:
    return metadata


@dataclass(frozen=True)
class MetricDefinition:
    kind: MetricKind
    name: tuple[str, ...]
    event_name: tuple[str, ...]
    measurement: Measurement
    tags: tuple[str, ...] = ()
    tag_values: TagValues = identity_tag_values
    keep: Predicate | None = None
    drop: Predicate | None = None
    unit: str | None = None
    reporter_options: tuple[tuple[str, Any], ...] = ()
    description: str | None = field(default=None, compare=False)

    @property
    def dotted_name(self) -> str:
        return ".".join(self.name)

    def option(self, key: str, default: Any = None) -> Any:
        for k, v in self.reporter_options:
            if k == key:
                return v
        return default

    def extract_measurement(self, measurements: Mapping[str, Any]) -> Any:
        if callable(self.measurement):
            return self.measurement(measurements)
        return measurements.get(self.measurement)


def split_name(name: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(name, str):
        segments = tuple(name.split("."))
    else:
        segments = tuple(str(s) for s in name)
    if not segments or any(not s for s in segments):
        raise ValueError(f"metric name {name!r} must be non-empty dotted segments")
    return segments


class _ConvertedMeasurement:
    """Scales a measurement between time units.

    Compares by (selector, factor) so two definitions built from identical
    arguments still compare equal.
    """

    __slots__ = ("selector", "factor")

    def __init__(self, selector: Measurement, factor: float):
        self.selector = selector
        self.factor = factor

    def __call__(self, measurements: Mapping[str, Any]) -> Any:
        if callable(self.selector):
            value = self.selector(measurements)
        else:
            value = measurements.get(self.selector)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value * self.factor
        return value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _ConvertedMeasurement):
            return NotImplemented
        return self.selector == other.selector and self.factor == other.factor

    def __hash__(self) -> int:
        return hash((self.selector, self.factor))


def _resolve_unit(
    measurement: Measurement, unit: str | tuple[str, str] | None
) -> tuple[Measurement, str | None]:
    if unit is None or isinstance(unit, str):
        return measurement, unit
    from_unit, to_unit = unit
    if from_unit not in TIME_UNITS or to_unit not in TIME_UNITS:
        raise ValueError(f"unit conversion {unit!r} only supports {sorted(TIME_UNITS)}")
    if from_unit == to_unit:
        return measurement, to_unit
    factor = TIME_UNITS[from_unit] / TIME_UNITS[to_unit]
    return _ConvertedMeasurement(measurement, factor), to_unit


def _build(
    kind: MetricKind,
    name: str | Sequence[str],
    *,
    event_name: str | Sequence[str] | None = None,
    measurement: Measurement | None = None,
    tags: Iterable[str] = (),
    tag_values: TagValues = identity_tag_values,
    keep: Predicate | None = None,
    drop: Predicate | None = None,
    unit: str | tuple[str, str] | None = None,
    reporter_options: Mapping[str, Any] | None = None,
    description: str | None = None,
) -> MetricDefinition:
    segments = split_name(name)
    if event_name is None:
        if len(segments) < 2:
            raise ValueError(
                f"metric name {name!r} needs an event prefix or an explicit event_name"
            )
        event = segments[:-1]
    else:
        event = split_name(event_name)
    if keep is not None and drop is not None:
        raise ValueError("keep and drop are mutually exclusive")
    selected, resolved_unit = _resolve_unit(
        measurement if measurement is not None else segments[-1], unit
    )
    options = tuple(sorted((reporter_options or {}).items()))
    return MetricDefinition(
        kind=kind,
        name=segments,
        event_name=event,
        measurement=selected,
        tags=tuple(str(t) for t in tags),
        tag_values=tag_values,
        keep=keep,
        drop=drop,
        unit=resolved_unit,
        reporter_options=options,
        description=description,
    )


def counter(name: str | Sequence[str], **options: Any) -> MetricDefinition:
    """Count the events whose measurement is present."""
    return _build(MetricKind.COUNTER, name, **options)


def sum(name: str | Sequence[str], **options: Any) -> MetricDefinition:  # noqa: A001
    """Add up measurement values."""
    return _build(MetricKind.SUM, name, **options)


def last_value(name: str | Sequence[str], **options: Any) -> MetricDefinition:
    """Keep the most recent measurement."""
    return _build(MetricKind.LAST_VALUE, name, **options)


def summary(name: str | Sequence[str], **options: Any) -> MetricDefinition:
    """Ship every measurement value; CloudWatch derives the statistics."""
    return _build(MetricKind.SUMMARY, name, **options)


def distribution(name: str | Sequence[str], **options: Any) -> MetricDefinition:
    """Histogram metric. Not aggregated by this reporter."""
    return _build(MetricKind.DISTRIBUTION, name, **options)


__all__ = [
    "MetricKind",
    "MetricDefinition",
    "SUPPORTED_KINDS",
    "counter",
    "sum",
    "last_value",
    "summary",
    "distribution",
    "split_name",
    "identity_tag_values",
]
