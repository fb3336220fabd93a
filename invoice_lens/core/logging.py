"""
Loguru setup for the API process.

Structured context is passed as keyword arguments
(``logger.info("Page extracted", page=2)``) and lands in ``record["extra"]``.
"""

import sys
from loguru import logger
from .config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level> {extra}"
)


def setup_logging(level: str | None = None, serialize: bool | None = None):
    """Replace loguru's default sink with one driven by settings and return the logger."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
        serialize=settings.log_json if serialize is None else serialize,
        backtrace=False,
        diagnose=False,
    )
    return logger
