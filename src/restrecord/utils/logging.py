"""Logging helpers shared by every restrecord module."""

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_ROOT_LOGGER_NAME = "restrecord"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger (use as ``logger = get_logger(__name__)``)."""
    return logging.getLogger(name)


def configure_logging(level: Union[int, str] = logging.INFO, fmt: Optional[str] = None) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.
    
    Calling it again only updates the level and format, so the CLI can call it
    unconditionally.
    
    Args:
        level: Logging level (name or number)
        fmt: Optional format string. Defaults to LOG_FORMAT.
        
    Returns:
        The package root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")
    
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(level)
    
    formatter = logging.Formatter(fmt or LOG_FORMAT)
    handler = next((h for h in root.handlers if getattr(h, "_restrecord", False)), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler._restrecord = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    handler.setFormatter(formatter)
    return root
