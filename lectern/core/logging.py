"""
Logging Configuration

Console logging for the API process, written to stdout so container
log drivers pick it up. Application, server and third-party client
loggers all share one handler and one line format.
"""

import sys
from logging.config import dictConfig
from typing import Any

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries whose INFO output is per-request noise (HTTP request lines, SQL)
QUIET_LOGGERS: tuple[str, ...] = ("sqlalchemy.engine", "httpx", "httpcore", "openai")


def _console_logger(level: str) -> dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging once per process.

    ``level`` applies to the root and ``lectern`` loggers; uvicorn stays
    at INFO and the libraries in QUIET_LOGGERS at WARNING.
    """
    log_level = level.upper()

    loggers: dict[str, dict[str, Any]] = {
        "lectern": _console_logger(log_level),
        "uvicorn": _console_logger("INFO"),
        "uvicorn.access": _console_logger("INFO"),
    }
    loggers.update({name: _console_logger("WARNING") for name in QUIET_LOGGERS})

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "root": {"level": log_level, "handlers": ["console"]},
            "loggers": loggers,
        }
    )
