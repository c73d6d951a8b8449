"""Logging setup for rss_content_fixer."""

import logging
import sys
from typing import Optional

from rss_content_fixer.config import ServerConfig


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("rss_content_fixer")


def setup_logging(config: Optional[ServerConfig] = None) -> logging.Logger:
    """Configure the package logger to write to stderr.

    Calling this more than once replaces the previous handler instead of
    stacking another one.

    Args:
        config: Server configuration holding the log level

    Returns:
        The package logger
    """
    level_name = config.log_level if config else "INFO"
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False

    return logger
