from __future__ import annotations

import asyncio
import importlib
import json
import signal
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

from prometheus_client import start_http_server
from reporter.core.config import settings
from reporter.core.logger import configure_logging, get_logger
from reporter.domain.definitions import MetricDefinition
from reporter.domain.publisher import Publisher
from reporter.infrastructure.cloudwatch.publisher import CloudWatchPublisher
from reporter.infrastructure.kafka.source import KafkaEventSource
from reporter.infrastructure.kafka.topic_waiter import ensure_topics_available
from reporter.infrastructure.logging_publisher import LoggingPublisher
from reporter.services.dispatcher import MetricsReporter
from reporter.services.event_source import _close_safe, consume_events

logger = get_logger("reporter.main")


def load_metrics(import_string: str | None) -> list[MetricDefinition]:
    """Resolve ``package.module:attribute`` to a list of metric definitions.

    The attribute may be the list itself or a zero-argument callable
    returning it.
    """
    if not import_string:
        raise ValueError(
            "the metrics option is required: set REPORTER_METRICS to 'module:attribute'"
        )
    module_name, sep, attribute = import_string.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"invalid metrics import string {import_string!r}")
    target = getattr(importlib.import_module(module_name), attribute)
    metrics = target() if callable(target) else target
    if metrics is None:
        raise ValueError(f"{import_string} did not provide a metrics list")
    return list(metrics)


def build_publisher() -> Publisher:
    if settings.reporter_publisher == "logging":
        return LoggingPublisher()
    return CloudWatchPublisher()


def _health_handler_factory(reporter: MetricsReporter):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):  # noqa: N802
            if self.path != "/healthz":
                self.send_response(404)
                self.end_headers()
                return
            payload = {
                "status": "ok" if reporter.running else "stopped",
                "service": settings.otel_service_name,
                "cached_metrics": reporter.cache.metric_count(),
            }
            body = json.dumps(payload).encode()
            self.send_response(200 if reporter.running else 503)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):  # noqa: A003
            return

    return Handler


def _start_health_server(reporter: MetricsReporter) -> None:
    def _serve():
        try:
            server = HTTPServer(
                ("0.0.0.0", settings.health_port), _health_handler_factory(reporter)
            )
            logger.info("health_server_listening", extra={"port": settings.health_port})
            server.serve_forever()
        except Exception as exc:  # noqa: BLE001
            logger.exception("health_server_error", extra={"error": str(exc)})

    threading.Thread(target=_serve, name="healthz", daemon=True).start()


async def _run_reporter(
    metrics: list[MetricDefinition],
    publisher: Publisher,
    shutdown_event: asyncio.Event,
) -> None:
    """Run the reporter fed by Kafka until shutdown, then close the publisher."""
    reporter = MetricsReporter(metrics, publisher)
    try:
        async with reporter:
            _start_health_server(reporter)
            source = KafkaEventSource(settings.kafka_consumer_topics)
            try:
                await consume_events(source, shutdown_event)
            except asyncio.CancelledError:  # pragma: no cover
                logger.info("reporter_cancelled")
    finally:
        await _close_safe(publisher, "publisher")


async def _run() -> None:
    configure_logging()
    logger.info("reporter_service_starting")

    metrics = load_metrics(settings.reporter_metrics)

    start_http_server(settings.metrics_port)
    logger.info("metrics_listening", extra={"port": settings.metrics_port})

    ensure_topics_available(settings.kafka_consumer_topics)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    state = {"signalled": False}

    # First signal drains gently, second cancels everything.
    def _on_signal(signum, frame):
        if not state["signalled"]:
            logger.info("signal_received", extra={"signal": signum, "action": "drain"})
            loop.call_soon_threadsafe(shutdown_event.set)
            state["signalled"] = True
        else:
            logger.warning(
                "second_signal_exit", extra={"signal": signum, "action": "cancel"}
            )
            for task in asyncio.all_tasks(loop):
                task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _on_signal)
        except Exception:  # noqa: BLE001
            logger.debug("signal_handler_install_failed", extra={"signal": sig})

    await _run_reporter(metrics, build_publisher(), shutdown_event)
    logger.info("reporter_service_stopped")


def main() -> None:  # pragma: no cover - small wrapper
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt_shutdown")
    except Exception:  # noqa: BLE001
        logger.exception("fatal_error_main")
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
