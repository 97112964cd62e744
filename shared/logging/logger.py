"""Shared get_logger.

Falls back to a plain-text basicConfig the first time a logger is
requested before configure_logging has run (scripts, tests, REPL use).
"""

from __future__ import annotations

import logging

_configured = False


def get_logger(name: str, auto_configure: bool = True) -> logging.Logger:
    """Return a logger, configuring minimal output on first use.

    Args:
        name: Logger name (usually dotted component name)
        auto_configure: Whether to install the fallback config when nothing
            has been configured yet
    """
    global _configured

    if auto_configure and not _configured:
        _configure_minimal_logging()
        _configured = True

    return logging.getLogger(name)


def _configure_minimal_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def is_configured() -> bool:
    return _configured


def mark_configured():
    """Called by shared.logging.json.configure_logging."""
    global _configured
    _configured = True
