import random
import time
from typing import Iterable

from confluent_kafka.admin import AdminClient
from reporter.core.config import settings
from reporter.core.logger import get_logger

logger = get_logger("reporter.kafka.topic_waiter")


def ensure_topics_available(
    topics: Iterable[str],
    max_retries: int = 30,
    initial_delay: float = 5,
    admin_client: AdminClient | None = None,
) -> None:
    """Block until every event topic exists, or raise after max_retries.

    Exponential backoff with jitter, capped at 60 seconds per wait.
    """
    wanted = set(topics)
    admin = admin_client or AdminClient(
        {"bootstrap.servers": settings.kafka_bootstrap_servers}
    )
    missing = set(wanted)

    for attempt in range(max_retries):
        try:
            metadata = admin.list_topics(timeout=10)
            missing = wanted - set(metadata.topics.keys())
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "topic_check_error", extra={"attempt": attempt, "error": str(exc)}
            )
            time.sleep(initial_delay)
            continue
        if not missing:
            logger.info(
                "topics_available",
                extra={"topics": sorted(wanted), "attempt": attempt},
            )
            return
        logger.warning(
            "topics_missing",
            extra={
                "missing": sorted(missing),
                "attempt": attempt,
                "max_retries": max_retries,
            },
        )
        base = min(initial_delay * (2**attempt), 60)
        time.sleep(base + random.uniform(0, base * 0.1))

    logger.error(
        "topics_unavailable_final",
        extra={"missing": sorted(missing), "max_retries": max_retries},
    )
    raise RuntimeError(f"Topics not available after {max_retries} attempts: {missing}")
