"""
Logging setup for the compliance rollup service.

Modules log through ``logging.getLogger(__name__)``; the service entry point
calls ``setup_logger`` once so those records share a handler and format.
"""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "compliance_core", level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Set up a logger with a console handler.

    Args:
        name: Logger name (the package name covers every module logger)
        level: Logging level, as a number or a name such as "DEBUG"

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return logger
