# app/core/logging.py
import logging

from app.core.config import settings

# DEBUG while developing or testing, INFO everywhere else
if settings.ENVIRONMENT in ("development", "test"):
    log_level = logging.DEBUG
else:
    log_level = logging.INFO

# Don't re-configure when the app is reloaded in-process
if not logging.root.handlers:
    logging.basicConfig(level=log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

logger = logging.getLogger(__name__)
logger.debug("Core logging configured (level=%s).", logging.getLevelName(log_level))


def get_logger(name: str) -> logging.Logger:
    """Helper to get a logger instance for a specific module."""
    return logging.getLogger(name)
