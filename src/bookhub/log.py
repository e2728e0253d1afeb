"""Application logging helpers.

One stream handler per named logger, level taken from the configured
``BOOKHUB_LOG_LEVEL``.
"""

import logging
import threading
from typing import Optional

from .config import get_config

_LOCK = threading.Lock()
_FORMAT = "[bookhub] %(asctime)s %(levelname)s %(name)s %(message)s"
_level_override: Optional[int] = None


def _resolve_level() -> int:
    if _level_override is not None:
        return _level_override
    level = logging.getLevelName(get_config().log_level)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str = "bookhub") -> logging.Logger:
    """Get a configured logger.

    Args:
        name: Logger name, usually ``__name__``

    Returns:
        Logger with a bookhub stream handler attached
    """
    with _LOCK:
        logger = logging.getLogger(name)
        logger.setLevel(_resolve_level())
        if not any(getattr(h, "_bookhub", False) for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_FORMAT))
            handler._bookhub = True  # type: ignore[attr-defined]
            logger.addHandler(handler)
        logger.propagate = False
        return logger


def set_level(level: int) -> None:
    """Change the level of every bookhub logger already handed out."""
    global _level_override
    with _LOCK:
        _level_override = level
        for name, logger in logging.Logger.manager.loggerDict.items():
            if isinstance(logger, logging.Logger) and name.startswith("bookhub"):
                logger.setLevel(level)


__all__ = ["get_logger", "set_level"]
