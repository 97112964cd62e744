class Topics:
    """Centralised Kafka topic definitions"""

    TELEMETRY_EVENTS = "telemetry_events"

    @classmethod
    def all_topics(cls) -> list[str]:
        return [cls.TELEMETRY_EVENTS]
