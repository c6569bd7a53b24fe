"""
Logging configuration for kubedrop runs.

Applied once by the entry point. Components never configure logging
themselves; they take a logger argument and default to a child of the
"kubedrop" logger.
"""

import logging
import logging.config
from typing import Any, Dict


class HttpxRequestFilter(logging.Filter):
    """Filter to suppress per-request httpx logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Drop the 'HTTP Request: ...' lines httpx emits at INFO."""
        if record.name.startswith("httpx") and record.levelno <= logging.INFO:
            if record.getMessage().startswith("HTTP Request:"):
                return False
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration with httpx request chatter suppressed."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "httpx_request_filter": {
                "()": HttpxRequestFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "transport": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["httpx_request_filter"]
            }
        },
        "loggers": {
            "kubedrop": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "httpx": {
                "handlers": ["transport"],
                "level": "WARNING" if level != "DEBUG" else "DEBUG",
                "propagate": False
            }
        },
        "root": {
            "level": level,
            "handlers": ["default"]
        }
    }
