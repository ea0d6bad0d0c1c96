"""Logging infrastructure for pkgwatch.

Log records go to the console and, optionally, to a rotating file under the
state directory. Timestamps are ISO 8601.
"""

import logging
import logging.handlers
import os

DEFAULT_LOG_DIR = os.path.expanduser("~/.local/state/pkgwatch")
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_MAX_BYTES = 1048576
LOG_BACKUP_COUNT = 3


def setup_logger(
    name: str,
    log_dir: str = DEFAULT_LOG_DIR,
    level: str = "INFO",
    file_logging: bool = False,
    console_logging: bool = True,
) -> logging.Logger:
    """Configure the logger for a pkgwatch entry point.

    Calling it twice for the same name only updates the level.

    Args:
        name: Logger name, normally ``pkgwatch``
        log_dir: Directory for ``<name>.log`` when file logging is on
        level: Logging level name, case insensitive
        file_logging: Write to a rotating log file
        console_logging: Write to stderr

    Returns:
        Configured logger instance

    Raises:
        ValueError: If ``level`` is not a logging level name
    """
    logger = logging.getLogger(name)

    level_upper = level.upper()
    if level_upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(getattr(logging, level_upper))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a component logger.

    Component loggers live under the ``pkgwatch`` namespace so that a single
    ``setup_logger("pkgwatch")`` call configures all of them.

    Args:
        name: Component name

    Returns:
        Logger instance
    """
    return logging.getLogger(f"pkgwatch.{name}")
