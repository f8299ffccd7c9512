# app/core/logging.py
import logging
from app.core.config import settings # Import settings to use ENVIRONMENT

# DEBUG while developing or testing, INFO everywhere else
log_level = logging.DEBUG if settings.ENVIRONMENT in ("development", "test") else logging.INFO

# Configure once; reloaders import this module more than once
if not logging.root.handlers:
    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# The notification poller talks to the API through httpx; its per-request
# DEBUG lines drown out the aggregator's own messages.
for noisy in ("httpx", "httpcore"):
    logging.getLogger(noisy).setLevel(max(log_level, logging.INFO))

logger = logging.getLogger(__name__)
logger.debug("Core logging configured (level=%s).", logging.getLevelName(log_level))

def get_logger(name: str):
    """Helper to get a logger instance for a specific module."""
    return logging.getLogger(name)
