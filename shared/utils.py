"""
POSTURELAB Shared Utilities

Logging setup and small numeric helpers.
"""

import logging
import math
import sys
import time
from functools import wraps

from core.config import settings


# ============================================
# Logging Configuration
# ============================================

def setup_logger(name: str = "posturelab", level: int = logging.INFO) -> logging.Logger:
    """
    Set up a configured logger with console output.
    
    Usage:
        logger = setup_logger("posturelab")
        logger.info("Hello from POSTURELAB")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    
    # Avoid duplicate handlers
    if logger.handlers:
        return logger
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    
    return logger


def _resolve_level(level_name: str) -> int:
    if settings.DEBUG:
        return logging.DEBUG
    return getattr(logging, level_name.upper(), logging.INFO)


# Default logger for imports; module loggers are children of it
logger = setup_logger("posturelab", level=_resolve_level(settings.LOG_LEVEL))


# ============================================
# Numeric Helpers
# ============================================

def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves towards positive infinity, the way scores are reported."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


# ============================================
# Decorators
# ============================================

def log_execution_time(func):
    """Decorator to log function execution time."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug(f"{func.__name__} executed in {elapsed:.2f}ms")
        return result
    
    return wrapper
