"""Polling loop feeding Kafka telemetry messages onto the bus."""

from __future__ import annotations

import asyncio

from reporter.core.config import settings
from reporter.core.logger import get_logger
from reporter.infrastructure.kafka.source import KafkaEventSource
from reporter.utils.concurrency import run_blocking

logger = get_logger("reporter.event_source")


async def _close_safe(obj, name: str = "") -> None:
    if obj is None:
        return
    close_fn = getattr(obj, "close", None)
    if not callable(close_fn):
        logger.debug("no_close_method", extra={"resource": name or repr(obj)})
        return
    try:
        await run_blocking(close_fn)
    except Exception:  # noqa: BLE001
        logger.exception("error_closing_resource", extra={"resource": name})


async def consume_events(
    source: KafkaEventSource, shutdown_event: asyncio.Event
) -> None:
    """Poll, emit, commit until shutdown. Closes the source on exit."""
    poll_interval = settings.reporter_poll_interval_seconds
    try:
        while not shutdown_event.is_set():
            try:
                emitted = await run_blocking(source.poll_once)
                await run_blocking(source.commit)
                if emitted:
                    continue
                await asyncio.sleep(poll_interval)
            except asyncio.CancelledError:  # pragma: no cover - control path
                raise
            except Exception as exc:  # noqa: BLE001
                logger.exception("event_source_error", extra={"error": str(exc)})
                await asyncio.sleep(5)
    finally:
        await _close_safe(source, "kafka_event_source")
        logger.info("event_source_stopped")
