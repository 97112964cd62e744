"""Dispatch loop: the single owner of the metric cache.

Bus callbacks and timer ticks are both turned into items on one
asyncio.Queue, consumed by one task. That task is the only code that ever
touches the cache, so pushes, scheduler checks and drains are serialized
without locks. Callbacks may arrive from any thread; they hop onto the
loop with call_soon_threadsafe.

While a publish is in flight the consumer task is awaiting it, so new
events wait in the queue and land in the next window.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Callable, Iterable, Mapping

from reporter.aggregation.cache import MetricCache, validate_metrics
from reporter.aggregation.sampling import Sampler
from reporter.aggregation.scheduler import should_flush
from reporter.core.config import settings
from reporter.core.logger import get_logger
from reporter.core.metrics import (
    CACHE_METRIC_COUNT,
    EVENTS_RECEIVED,
    FLUSHES,
    MEASUREMENTS_REJECTED,
    PUBLISH_ERRORS,
    PUBLISH_LATENCY,
    QUEUE_SIZE,
    RECORDS_PUBLISHED,
    SAMPLES_REJECTED,
)
from reporter.domain.definitions import MetricDefinition
from reporter.domain.publisher import Publisher
from reporter.domain.records import OutputRecord
from reporter.infrastructure.telemetry.bus import EventName, TelemetryBus, default_bus
from reporter.utils.concurrency import run_blocking

logger = get_logger("reporter.dispatcher")

_PUSH_CHECK = object()
_STOP = object()


class MetricsReporter:
    """Aggregates bus events for a set of metric definitions and publishes them.

    Use as an async context manager so handlers are always detached:

        async with MetricsReporter(metrics, CloudWatchPublisher()) as reporter:
            ...
    """

    def __init__(
        self,
        metrics: Iterable[MetricDefinition] | None,
        publisher: Publisher,
        *,
        namespace: str | None = None,
        push_interval_ms: int | None = None,
        sample_rate: float | None = None,
        flush_on_stop: bool | None = None,
        bus: TelemetryBus | None = None,
        name: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
    ):
        if metrics is None:
            raise ValueError("the metrics option is required by MetricsReporter")
        self.metrics = list(metrics)
        validate_metrics(self.metrics)

        if push_interval_ms is None:
            push_interval_ms = settings.reporter_push_interval_ms
        if push_interval_ms <= 0:
            raise ValueError(f"push_interval_ms must be positive, got {push_interval_ms}")
        if sample_rate is None:
            sample_rate = settings.reporter_sample_rate

        self.clock = clock
        self.sampler = Sampler(sample_rate, rng)
        self.cache = MetricCache(
            namespace=namespace or settings.reporter_namespace,
            push_interval=push_interval_ms / 1000,
            sample_rate=sample_rate,
            last_flush=clock(),
        )
        self.publisher = publisher
        self.bus = bus or default_bus
        self.name = name or f"metrics-reporter-{id(self):x}"
        self.flush_on_stop = (
            settings.reporter_flush_on_shutdown if flush_on_stop is None else flush_on_stop
        )

        self._groups: dict[EventName, list[MetricDefinition]] = {}
        for definition in self.metrics:
            self._groups.setdefault(definition.event_name, []).append(definition)

        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[Any] | None = None
        self._consumer_task: asyncio.Task | None = None
        self._timer_task: asyncio.Task | None = None
        self._handler_ids: list[tuple[str, EventName]] = []

    @property
    def running(self) -> bool:
        return self._consumer_task is not None

    async def start(self) -> None:
        if self.running:
            raise RuntimeError(f"{self.name} is already running")
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._consumer_task = asyncio.create_task(self._consume(), name=self.name)
        self._timer_task = asyncio.create_task(
            self._tick(), name=f"{self.name}-push-check"
        )
        try:
            for event_name, definitions in self._groups.items():
                handler_id = (self.name, event_name)
                self.bus.attach(handler_id, event_name, self.handle_event, definitions)
                self._handler_ids.append(handler_id)
        except Exception:
            await self.stop()
            raise
        self.cache.event_names = list(self._groups)
        logger.info(
            "reporter_started",
            extra={
                "reporter": self.name,
                "namespace": self.cache.namespace,
                "events": [".".join(e) for e in self._groups],
                "push_interval_s": self.cache.push_interval,
                "sample_rate": self.sampler.rate,
            },
        )

    async def stop(self) -> None:
        """Detach from the bus, process what is queued, stop the tasks."""
        for handler_id in self._handler_ids:
            self.bus.detach(handler_id)
        self._handler_ids.clear()
        self.cache.event_names = []

        try:
            if self._timer_task is not None:
                self._timer_task.cancel()
                try:
                    await self._timer_task
                except asyncio.CancelledError:
                    logger.debug("push_check_timer_cancelled")
            if self._consumer_task is not None and self._queue is not None:
                self._queue.put_nowait(_STOP)
                await self._consumer_task
            if self.flush_on_stop and self.cache.metric_count() > 0:
                await self.flush()
        finally:
            self._timer_task = None
            self._consumer_task = None
            self._loop = None
            logger.info("reporter_stopped", extra={"reporter": self.name})

    async def join(self) -> None:
        """Wait until every queued event and tick has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def __aenter__(self) -> MetricsReporter:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def handle_event(
        self,
        event_name: EventName,
        measurements: Mapping[str, Any],
        metadata: Mapping[str, Any],
        definitions: list[MetricDefinition],
    ) -> None:
        """Bus callback. Safe to call from any thread."""
        loop, queue = self._loop, self._queue
        if loop is None or queue is None:
            return
        EVENTS_RECEIVED.inc()
        item = (measurements, metadata, definitions)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            queue.put_nowait(item)
        else:
            loop.call_soon_threadsafe(queue.put_nowait, item)

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.cache.push_interval)
            if self._queue is not None:
                self._queue.put_nowait(_PUSH_CHECK)

    async def _consume(self) -> None:
        queue = self._queue
        assert queue is not None
        while True:
            item = await queue.get()
            try:
                if item is _STOP:
                    return
                if item is _PUSH_CHECK:
                    await self.push_check()
                else:
                    await self.process(*item)
            except Exception as exc:  # noqa: BLE001
                logger.exception("dispatch_loop_error", extra={"error": str(exc)})
            finally:
                queue.task_done()
                QUEUE_SIZE.set(queue.qsize())

    async def process(
        self,
        measurements: Mapping[str, Any],
        metadata: Mapping[str, Any],
        definitions: Iterable[MetricDefinition],
    ) -> None:
        """Sample, fold and check the scheduler for each definition of an event."""
        for definition in definitions:
            if not self.sampler.sample():
                SAMPLES_REJECTED.inc()
                continue
            if not self.cache.push(measurements, metadata, definition):
                MEASUREMENTS_REJECTED.inc()
                continue
            CACHE_METRIC_COUNT.set(self.cache.metric_count())
            await self.push_check()

    async def push_check(self) -> bool:
        if not should_flush(self.cache, self.clock()):
            return False
        await self.flush()
        return True

    async def flush(self) -> int:
        """Drain the cache and publish it. Returns the number of records.

        The flush clock advances whether or not the publish succeeds; a
        failed batch is logged and dropped.
        """
        records = self.cache.drain()
        CACHE_METRIC_COUNT.set(0)
        try:
            if records:
                await self._publish(records)
        finally:
            self.cache.last_flush = self.clock()
        return len(records)

    async def _publish(self, records: list[OutputRecord]) -> bool:
        namespace = self.cache.namespace
        FLUSHES.inc()
        start = time.perf_counter()
        try:
            await run_blocking(self.publisher.send, records, namespace)
        except Exception as exc:  # noqa: BLE001
            PUBLISH_ERRORS.inc()
            logger.error(
                "publish_failed",
                extra={
                    "count": len(records),
                    "namespace": namespace,
                    "error": repr(exc),
                },
            )
            return False
        PUBLISH_LATENCY.observe(time.perf_counter() - start)
        RECORDS_PUBLISHED.inc(len(records))
        logger.debug(
            "metrics_published",
            extra={"count": len(records), "namespace": namespace},
        )
        return True
