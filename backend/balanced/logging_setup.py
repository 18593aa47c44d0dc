"""Logging configuration"""
import logging
import sys

from .config import settings

_NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "googleapiclient.discovery_cache",
    "stripe",
    "uvicorn.access",
)


def setup_logging(verbose: bool | None = None) -> None:
    """Configure application logging once, at start-up."""
    if verbose is None:
        verbose = settings.LOG_LEVEL.upper() == "DEBUG"

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if not verbose:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
