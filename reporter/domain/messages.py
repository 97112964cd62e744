from typing import Any, Union

from pydantic import BaseModel, Field, field_validator


class TelemetryMessage(BaseModel):
    """A telemetry event carried over Kafka.

    {"event": "http.request", "measurements": {"duration": 12}, "metadata": {...}}
    """

    event: Union[str, list[str]]
    measurements: dict[str, Any]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("event")
    @classmethod
    def _event_not_empty(cls, v):
        if not v:
            raise ValueError("event name must not be empty")
        return v

    @property
    def event_name(self) -> tuple[str, ...]:
        if isinstance(self.event, str):
            return tuple(self.event.split("."))
        return tuple(self.event)
