"""Centralized logging configuration for the ear trainer.

Every module obtains its logger through ``ear_trainer.logger.get_logger``;
this module decides where the records go and at which level.
"""

import logging
import sys
from typing import Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "ear_trainer": logging.INFO,
    "ear_trainer.app": logging.INFO,
    "ear_trainer.cli": logging.INFO,
    "ear_trainer.core": logging.INFO,
    "ear_trainer.training": logging.INFO,
    # Detection pipeline, per-tick chatter lives at DEBUG
    "ear_trainer.detection": logging.INFO,
    "ear_trainer.audio": logging.INFO,
    "ear_trainer.logger": logging.WARNING,
    # Libraries/third-party
    "aubio": logging.ERROR,
    "pygame": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'ear_trainer' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        _console_handler.setFormatter(formatter)

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("ear_trainer"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)

        # Child loggers of a configured package propagate up to it
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.addHandler(_console_handler)
        logger.propagate = False

    logging.getLogger("ear_trainer").info("Logging configuration complete")
