from .publisher import CloudWatchPublisher, to_metric_datum

__all__ = ["CloudWatchPublisher", "to_metric_datum"]
