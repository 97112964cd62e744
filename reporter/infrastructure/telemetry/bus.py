"""In-process telemetry event bus.

Libraries emit ``execute(("http", "request"), {"duration": 12}, {...})``;
handlers attached to that event name receive
``function(event_name, measurements, metadata, config)`` synchronously in
the emitting thread. A handler that raises is logged and detached so one
broken subscriber cannot disturb the emitter or its siblings.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable, Mapping, Sequence

from reporter.core.logger import get_logger

logger = get_logger("reporter.telemetry.bus")

EventName = tuple[str, ...]
HandlerFunction = Callable[[EventName, Mapping[str, Any], Mapping[str, Any], Any], None]


def normalize_event_name(event_name: str | Sequence[str]) -> EventName:
    if isinstance(event_name, str):
        return tuple(event_name.split("."))
    return tuple(event_name)


@dataclass(frozen=True)
class Handler:
    handler_id: Hashable
    event_name: EventName
    function: HandlerFunction = field(compare=False)
    config: Any = field(default=None, compare=False)


class TelemetryBus:
    def __init__(self):
        self._lock = threading.RLock()
        self._handlers: dict[Hashable, list[Handler]] = {}

    def attach(
        self,
        handler_id: Hashable,
        event_name: str | Sequence[str],
        function: HandlerFunction,
        config: Any = None,
    ) -> None:
        self.attach_many(handler_id, [event_name], function, config)

    def attach_many(
        self,
        handler_id: Hashable,
        event_names: Iterable[str | Sequence[str]],
        function: HandlerFunction,
        config: Any = None,
    ) -> None:
        handlers = [
            Handler(handler_id, normalize_event_name(name), function, config)
            for name in event_names
        ]
        with self._lock:
            if handler_id in self._handlers:
                raise ValueError(f"handler {handler_id!r} is already attached")
            self._handlers[handler_id] = handlers
        logger.debug(
            "handler_attached",
            extra={
                "handler_id": repr(handler_id),
                "events": [".".join(h.event_name) for h in handlers],
            },
        )

    def detach(self, handler_id: Hashable) -> bool:
        with self._lock:
            removed = self._handlers.pop(handler_id, None)
        return removed is not None

    def list_handlers(self, event_prefix: str | Sequence[str] = ()) -> list[Handler]:
        prefix = normalize_event_name(event_prefix) if event_prefix else ()
        with self._lock:
            return [
                h
                for handlers in self._handlers.values()
                for h in handlers
                if h.event_name[: len(prefix)] == prefix
            ]

    def execute(
        self,
        event_name: str | Sequence[str],
        measurements: Mapping[str, Any],
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        name = normalize_event_name(event_name)
        metadata = metadata if metadata is not None else {}
        with self._lock:
            targets = [
                h
                for handlers in self._handlers.values()
                for h in handlers
                if h.event_name == name
            ]
        for handler in targets:
            try:
                handler.function(name, measurements, metadata, handler.config)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "handler_failed_detached",
                    extra={
                        "handler_id": repr(handler.handler_id),
                        "event": ".".join(name),
                    },
                )
                self.detach(handler.handler_id)


default_bus = TelemetryBus()


def attach(handler_id, event_name, function, config=None) -> None:
    default_bus.attach(handler_id, event_name, function, config)


def attach_many(handler_id, event_names, function, config=None) -> None:
    default_bus.attach_many(handler_id, event_names, function, config)


def detach(handler_id) -> bool:
    return default_bus.detach(handler_id)


def execute(event_name, measurements, metadata=None) -> None:
    default_bus.execute(event_name, measurements, metadata)
