"""
Logging configuration for the Ride Risk Engine.

All components log through "riskengine.<component>" loggers, which
propagate to the "riskengine" logger configured here.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER = "riskengine"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _stdout_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def get_logger(name: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """
    Get a configured logger instance.

    A stdout handler is attached once; later calls only change the level.

    Args:
        name: Logger name (defaults to 'riskengine')
        level: Logging level (e.g. APP_LOG_LEVEL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name or ROOT_LOGGER)

    if not logger.handlers:
        logger.addHandler(_stdout_handler())

    logger.setLevel(level)
    return logger


# Default logger instance
logger = get_logger()
