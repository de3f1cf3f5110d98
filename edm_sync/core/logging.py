"""
Logging utilities for the FastAPI application and the refresh scripts.

Provides a consistent logging format and configuration.
"""

import logging
import sys
from typing import Optional, TextIO

_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=stream or sys.stdout,
    )
    # Request lines from the HTTP client add nothing over our own refresh logs.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging"]
