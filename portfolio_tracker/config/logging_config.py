# portfolio_tracker/config/logging_config.py

from __future__ import annotations
import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Varsayılan handler'ı kaldırıp tek bir stderr sink'i kurar."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT)
