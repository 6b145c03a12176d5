"""
Logging helpers for the gauge auto-voter.

Every module grabs its logger through get_logger(); the first call for a
name attaches a console handler. GAV_LOG_LEVEL overrides the level, and the
CLI can raise or lower it at runtime with set_level().
"""

import logging
import os
from typing import Optional, Set

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty third-party loggers, only shown at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "solana")

_configured: Set[str] = set()


def _level_from_env() -> int:
    level_str = os.getenv("GAV_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a configured logger with a stream handler.

    The handler is attached once per logger name.
    """
    logger = logging.getLogger(name if name else "gauge_autovoter")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(_level_from_env())
        _configured.add(logger.name)

        if logger.level > logging.DEBUG:
            for noisy in _NOISY_LOGGERS:
                logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


def set_level(level: str) -> None:
    """Change the level of every logger created through get_logger()."""
    resolved = getattr(logging, level.upper(), logging.INFO)
    for name in _configured:
        logging.getLogger(name).setLevel(resolved)
