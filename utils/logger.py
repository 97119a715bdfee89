import logging
import sys
from settings.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER_NAME = "table_booking"

_configured = False

def _configure_root():
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL.upper())
    _configured = True

def get_logger(name: str) -> logging.Logger:
    """
    Returns a named child of the application logger.
    All loggers share one stdout handler configured on first use.
    """
    if not _configured:
        _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
