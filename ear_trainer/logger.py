"""Centralized lazy-loading logger access for the ear trainer."""
import logging
from typing import Dict

# Module-level cache for loggers
_logger_cache: Dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """
    Get a lazily initialized logger with the given name.

    Levels and handlers are applied separately by
    ``ear_trainer.logging_config.setup_logging``.

    Args:
        name: The full module name (e.g., 'ear_trainer.detection.controller')

    Returns:
        A logger instance
    """
    if name not in _logger_cache:
        _logger_cache[name] = logging.getLogger(name)
    return _logger_cache[name]
