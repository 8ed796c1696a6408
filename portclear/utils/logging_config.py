"""Logging configuration for PortClear."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
import time
from functools import wraps

from ..config import APP_NAME, LOG_DIR, SLOW_OPERATION_MS

# Log file with timestamp, created on first setup_logging(log_to_file=True)
LOG_FILE = LOG_DIR / f"{APP_NAME}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

# Create formatters
DETAILED_FORMAT = logging.Formatter(
    '%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-25s | %(funcName)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

SIMPLE_FORMAT = logging.Formatter(
    '%(asctime)s | %(levelname)-8s | %(message)s',
    datefmt='%H:%M:%S'
)


def setup_logging(
    level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
    log_to_file: bool = True,
) -> logging.Logger:
    """
    Setup application-wide logging.

    Args:
        level: Level of the application logger (default DEBUG for diagnostics)
        console_level: Level of the stderr handler. stdout is left alone
                       because it carries command results and JSON.
        log_to_file: If True, also write a detailed log under LOG_DIR.

    Returns:
        Root logger for the application
    """
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(console_level)
        return logger

    if log_to_file:
        try:
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        except OSError as e:
            # Read-only home directories still get console logging
            file_handler = None
            print(f"Could not open log file {LOG_FILE}: {e}", file=sys.stderr)
        if file_handler is not None:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(DETAILED_FORMAT)
            logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(SIMPLE_FORMAT)
    logger.addHandler(console_handler)

    logger.debug(f"Logging initialized. Log file: {LOG_FILE if log_to_file else '<disabled>'}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module."""
    return logging.getLogger(f'{APP_NAME}.{name}')


def timed(func):
    """Decorator to log function execution time."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger('perf')
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            elapsed = (time.perf_counter() - start) * 1000  # ms
            if elapsed > SLOW_OPERATION_MS:
                logger.warning(f"SLOW: {func.__qualname__} took {elapsed:.2f}ms")
            else:
                logger.debug(f"{func.__qualname__} took {elapsed:.2f}ms")
            return result
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug(f"{func.__qualname__} failed after {elapsed:.2f}ms: {e}")
            raise
    return wrapper


class PerfTimer:
    """Context manager for timing code blocks."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or get_logger('perf')
        self.start: float = 0
        self.elapsed: float = 0

    def __enter__(self):
        self.start = time.perf_counter()
        self.logger.debug(f"Starting: {self.name}")
        return self

    def __exit__(self, *args):
        self.elapsed = (time.perf_counter() - self.start) * 1000
        if self.elapsed > SLOW_OPERATION_MS:
            self.logger.warning(f"SLOW: {self.name} took {self.elapsed:.2f}ms")
        else:
            self.logger.debug(f"Completed: {self.name} in {self.elapsed:.2f}ms")


def get_log_file_path() -> Path:
    """Get current log file path."""
    return LOG_FILE
