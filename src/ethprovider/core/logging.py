"""
Logging for ethprovider.

Every module logs through a child of the `ethprovider` logger obtained
with `get_logger`. Nothing is printed until the host application calls
`configure_logging`, typically with the level from ProviderConfig:

    >>> config = ProviderConfig.from_env()
    >>> configure_logging(config)
"""

from __future__ import annotations

import json
import logging
import sys
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from ethprovider.core.config import ProviderConfig

LOGGER_NAME = "ethprovider"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, with the traceback under `exc_info`."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(
    level: int | str | ProviderConfig = logging.INFO,
    json_format: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Configure the ethprovider logger.

    Args:
        level: Logging level (e.g., logging.INFO, "DEBUG"), or a
            ProviderConfig whose `log_level` is used
        json_format: Whether to emit one JSON object per line
        stream: Destination stream, stdout by default

    Returns:
        The configured logger instance.
    """
    if not isinstance(level, (int, str)):
        level = level.log_level
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-configuring replaces the previous handler
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    # Host applications keep their own root setup
    logger.propagate = False

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a child logger of ethprovider."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
