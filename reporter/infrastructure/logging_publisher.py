from __future__ import annotations

from typing import Sequence

from reporter.core.logger import get_logger
from reporter.domain.records import OutputRecord

logger = get_logger("reporter.logging_publisher")


class LoggingPublisher:
    """Writes batches to the log instead of the network. For local runs."""

    def send(self, batch: Sequence[OutputRecord], namespace: str) -> None:
        for record in batch:
            logger.info(
                "metric_record",
                extra={"namespace": namespace, **record.model_dump(exclude_none=True)},
            )
