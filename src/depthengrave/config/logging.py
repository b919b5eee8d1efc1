"""Logging setup for the command-line front end.

Library modules only create loggers; handlers are installed here, once,
by the application.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, extra fields included."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_data[key] = value
        return json.dumps(log_data, default=str)


TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"


def configure_logging(level: str | int = "WARNING", json_format: bool = False) -> None:
    """Route ``depthengrave`` records to stderr at *level*."""
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format
                         else logging.Formatter(TEXT_FORMAT, "%H:%M:%S"))

    logger = logging.getLogger("depthengrave")
    for old in logger.handlers[:]:
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level)
