"""
Logging configuration using loguru.
"""
import sys

from loguru import logger

from matchtracker.core.config import get_settings


def setup_logger() -> None:
    """Configure the loguru stderr sink from settings."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
        colorize=True,
        diagnose=False,
    )
    logger.info("Logger initialized")
