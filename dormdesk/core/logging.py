"""Logging configuration."""

import logging

from dormdesk.core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: Settings) -> None:
    """Configure root logging once for the process."""
    if config.LOG_LEVEL:
        level = logging.getLevelName(config.LOG_LEVEL.upper())
    else:
        level = logging.DEBUG if config.DEBUG else logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
