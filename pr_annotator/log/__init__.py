# AGPL-3.0 License

import logging
import sys
from enum import Enum

from loguru import logger


class LoggingFormat(str, Enum):
    CONSOLE = "CONSOLE"
    JSON = "JSON"


def _analytics_filter(record: dict) -> bool:
    return record.get("extra", {}).get("analytics", False) is False


def setup_logger(level: str = "INFO", fmt: LoggingFormat = LoggingFormat.CONSOLE):
    """
    Install a single stdout sink on the shared loguru logger.

    Args:
        level: Logging level name (e.g. "DEBUG", "INFO")
        fmt: CONSOLE for human-readable colored output, JSON for one
            serialized record per line (used when running as a CI action)

    Returns:
        The configured logger
    """
    level_no = logging.getLevelName(level.upper())
    if type(level_no) is not int:
        level_no = logging.INFO

    logger.remove(None)
    if fmt == LoggingFormat.JSON:
        logger.add(
            sys.stdout,
            filter=_analytics_filter,
            level=level_no,
            format="{message}",
            colorize=False,
            serialize=True,
        )
    else:
        logger.add(sys.stdout, level=level_no, colorize=True, filter=_analytics_filter)
    return logger


def get_logger(*args, **kwargs):
    return logger
