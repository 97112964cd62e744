from .cache import MetricCache, validate_metrics
from .sampling import Sampler, should_sample
from .scheduler import flush_due, should_flush
from .tags import extract_dimensions

__all__ = [
    "MetricCache",
    "Sampler",
    "extract_dimensions",
    "flush_due",
    "should_flush",
    "should_sample",
    "validate_metrics",
]
