"""
Logging configuration for the booking engine.

Console output is plain text by default; set LOG_JSON=true to emit one JSON
object per line (python-json-logger), which keeps the structured ``extra``
fields of audit records queryable.
"""

import logging
import logging.config
from typing import Any, Dict

from app.core.config import settings

AUDIT_LOGGER_NAME = "app.audit.establishment_access"


def build_logging_config(json_output: bool, level: str) -> Dict[str, Any]:
    formatter = "json" if json_output else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level},
            AUDIT_LOGGER_NAME: {"level": "INFO", "propagate": True},
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
        },
    }


def configure_logging() -> None:
    logging.config.dictConfig(
        build_logging_config(settings.LOG_JSON, settings.LOG_LEVEL.upper())
    )
