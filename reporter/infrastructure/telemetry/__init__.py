from .bus import Handler, TelemetryBus, attach, attach_many, default_bus, detach, execute

__all__ = [
    "Handler",
    "TelemetryBus",
    "attach",
    "attach_many",
    "default_bus",
    "detach",
    "execute",
]
