"""Logging setup for the finca command line."""

import logging
from logging.config import dictConfig
import os
from typing import Optional

LOG_FILE_ENV_VAR = "FINCA_LOG_FILE"


def setup_logging(level: int = logging.WARNING, log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    Console output goes to stderr so command output on stdout stays clean.
    A log file (from the argument or FINCA_LOG_FILE) additionally records
    everything from INFO up.
    """
    log_file = log_file or os.environ.get(LOG_FILE_ENV_VAR)

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level,
            "stream": "ext://sys.stderr",
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": min(level, logging.INFO),
            "filename": log_file,
            "encoding": "utf-8",
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}
            },
            "handlers": handlers,
            "loggers": {
                "": {"handlers": list(handlers), "level": min(level, logging.INFO) if log_file else level},
                "sqlalchemy": {"level": logging.WARNING},
            },
        }
    )
