"""Logger factory shared by every sherdview module."""

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_ROOT_LOGGER_NAME = "sherdview"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger (use ``get_logger(__name__)``)."""
    return logging.getLogger(name)


def configure_logging(level: Optional[Union[str, int]] = None) -> logging.Logger:
    """
    Install a single stream handler on the package logger.
    
    Safe to call more than once: the handler is only added the first time,
    later calls just update the level.
    
    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level. Defaults to INFO.
        
    Returns:
        The configured package logger
        
    Raises:
        ValueError: If the level name is unknown
    """
    if level is None:
        level = logging.INFO
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved
    
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if not any(getattr(h, "_sherdview_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._sherdview_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)
    return root
