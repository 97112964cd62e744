"""Flush policy.

PutMetricData accepts at most 20 distinct metrics per call and at most 150
values for any one metric, so a drain must happen as soon as the cache
reaches either ceiling, not only when the push interval elapses.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .cache import MetricCache

MAX_METRICS_PER_BATCH = 20
MAX_VALUES_PER_METRIC = 150


def flush_due(
    metric_count: int,
    max_values: int,
    elapsed: float,
    push_interval: float,
) -> bool:
    if elapsed >= push_interval and metric_count > 0:
        return True
    if metric_count >= MAX_METRICS_PER_BATCH:
        return True
    return max_values >= MAX_VALUES_PER_METRIC


def should_flush(cache: MetricCache, now: float | None = None) -> bool:
    """Evaluate the policy against the cache's current state.

    ``now`` is a time.monotonic() reading; defaults to the current one.
    """
    if now is None:
        now = time.monotonic()
    return flush_due(
        cache.metric_count(),
        cache.max_values_per_metric(),
        now - cache.last_flush,
        cache.push_interval,
    )
