"""Prometheus self-metrics for the reporter."""

from shared.metrics import get_counter, get_gauge, get_histogram

SERVICE = "reporter"

EVENTS_RECEIVED = get_counter(
    "events_received_total", "Telemetry events delivered to the reporter", SERVICE
)
SAMPLES_REJECTED = get_counter(
    "samples_rejected_total", "Event/metric pairings rejected by sampling", SERVICE
)
MEASUREMENTS_REJECTED = get_counter(
    "measurements_rejected_total",
    "Sampled events that were not folded into the cache",
    SERVICE,
)
FLUSHES = get_counter("flushes_total", "Cache drains handed to the publisher", SERVICE)
RECORDS_PUBLISHED = get_counter(
    "records_published_total", "Metric records successfully published", SERVICE
)
PUBLISH_ERRORS = get_counter(
    "publish_errors_total", "Publish attempts that failed (batch dropped)", SERVICE
)
PUBLISH_LATENCY = get_histogram(
    "publish_latency_seconds", "Time spent in the publisher per batch", SERVICE
)
CACHE_METRIC_COUNT = get_gauge(
    "cache_metric_count", "Distinct aggregation keys currently cached", SERVICE
)
QUEUE_SIZE = get_gauge(
    "queue_current_size", "Pending items in the dispatch queue", SERVICE
)
KAFKA_RECORDS = get_counter(
    "kafka_records_total", "Kafka records consumed by the event source", SERVICE
)
KAFKA_INVALID_RECORDS = get_counter(
    "kafka_invalid_records_total", "Kafka records skipped as malformed", SERVICE
)
