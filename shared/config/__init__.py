"""Shared configuration base classes.

Every settings object in the reporter is env-var driven through
pydantic-settings; these bases hold the fields common to all of them.
"""

from pydantic_settings import BaseSettings


class BaseLoggingConfig(BaseSettings):
    """Logging configuration."""

    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "key",
        "authorization",
        "credential",
    ]
    app_environment: str = "production"


class BaseKafkaConfig(BaseSettings):
    """Kafka connection configuration."""

    kafka_bootstrap_servers: str = "kafka1:19092"


class BaseServiceConfig(BaseLoggingConfig, BaseKafkaConfig):
    """Logging and Kafka settings combined.

    Services inherit from this and add their own settings. The
    otel_service_name should be overridden by each service.
    """

    otel_service_name: str = "unknown"


__all__ = ["BaseLoggingConfig", "BaseKafkaConfig", "BaseServiceConfig"]
