"""
Centralized logging configuration for termgv

termgv logs at DEBUG while it works: MM sections the decoder skips and
malformed deltas that end a section, trailing insertions that cannot be
drawn, pairs computed per region and the write count of each render pass.
Loaded read counts and saved snapshot paths are logged at INFO. The logging
level can be controlled via the TERMGV_LOG_LEVEL environment variable.

Environment Variables:
    TERMGV_LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                      Default: WARNING

Examples:
    >>> from termgv.logging_config import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.debug("Decoded %d modification calls", 12)
"""

import logging
import os


def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger with the specified name

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure once per logger name
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        level_name = os.getenv("TERMGV_LOG_LEVEL", "WARNING").upper()
        level = getattr(logging, level_name, None)
        if isinstance(level, int):
            logger.setLevel(level)
        else:
            logger.setLevel(logging.WARNING)
            logger.warning(
                f"Invalid TERMGV_LOG_LEVEL '{level_name}'. Using WARNING instead. "
                f"Valid levels: DEBUG, INFO, WARNING, ERROR, CRITICAL"
            )

    return logger
