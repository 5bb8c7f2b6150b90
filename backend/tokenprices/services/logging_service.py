"""Logging setup and request logging."""

import logging
import sys
from typing import Optional

from fastapi import Request

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)-8s] [%(name)-20s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", log_format: Optional[str] = None) -> None:
    """Configure the root logger for the service.

    Args:
        level: Minimum level name (DEBUG, INFO, ...).
        log_format: Optional format string, defaults to DEFAULT_LOG_FORMAT.
    """
    formatter = logging.Formatter(log_format or DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # aiohttp access/client logs are noisy at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    logger.debug(f"Logging configured at level {level}")


async def log_requests(request: Request, call_next):
    """HTTP middleware logging every request at DEBUG level."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    return await call_next(request)
