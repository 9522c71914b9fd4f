from __future__ import annotations

import logging
import os
from typing import Optional

from ..domain.interfaces import AttemptLogger


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        level = os.getenv("PUPPETDB_LOG_LEVEL", "INFO").upper()
        logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(levelname)s | %(message)s")
    return logger


class LoggingAttemptLogger(AttemptLogger):
    """Writes one INFO line per outgoing request to a named logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or get_logger("puppetdb_client.http")

    def record_attempt(self, method: str, url: str) -> None:
        self._logger.info("%s %s", method, url)


class NullAttemptLogger(AttemptLogger):
    """Discards attempts; used when verbose tracing is off."""

    def record_attempt(self, method: str, url: str) -> None:
        return None
