from loguru import logger
from rich.logging import RichHandler
import os
import sys
import time
from functools import wraps

from mirrorsync.utils.rich_console import get_console

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_log_level() -> str:
    """Log level from ``MIRRORSYNC_LOG_LEVEL``, INFO when unset or invalid."""
    level = os.getenv("MIRRORSYNC_LOG_LEVEL", "INFO").upper()
    if level not in VALID_LEVELS:
        return "INFO"
    return level


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Route loguru output through a rich handler.

    Environment variables:
        MIRRORSYNC_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        MIRRORSYNC_DEBUG: Also log to a file (true, 1, yes)
        MIRRORSYNC_LOG_FILE: Log file path (default: mirrorsync.log)
    """
    level = (level or get_log_level()).upper()
    logger.remove()
    if sys.stderr is not None:
        handler = RichHandler(console=get_console(stderr=True), rich_tracebacks=True, show_path=False)
        logger.add(handler, level=level, format="{message}")

    debug_mode = os.getenv("MIRRORSYNC_DEBUG", "").lower() in ["true", "1", "yes"]
    if debug_mode or log_file:
        log_file = log_file or os.getenv("MIRRORSYNC_LOG_FILE", "mirrorsync.log")
        logger.add(
            log_file,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} - {name} - {level} - {message}",
        )


def timeit(func):
    """
    Decorator that logs the execution time of the decorated function.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start
        logger.debug(f"{func.__qualname__} executed in {elapsed:.6f}s")
        return result
    return wrapper
