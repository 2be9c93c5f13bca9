"""
Logging configuration.
"""

import logging.config
from pathlib import Path

from unipool.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def setup_logging() -> None:
    """Configure root logging from settings. Safe to call more than once."""

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    }

    if settings.LOG_FILE:
        Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "default",
            "filename": settings.LOG_FILE,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf-8",
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "root": {
            "level": settings.LOG_LEVEL,
            "handlers": list(handlers),
        },
        "loggers": {
            # SQL echo is controlled by DB_ECHO, keep the engine logger quiet otherwise
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })
