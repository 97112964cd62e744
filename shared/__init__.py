"""Shared utilities: configuration bases, logging, prometheus helpers."""

from .config import BaseKafkaConfig, BaseLoggingConfig, BaseServiceConfig
from .constants import Topics

__all__ = [
    "Topics",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseKafkaConfig",
]
