"""
Logging setup shared by the CLI and the API server.

Records from every chat_export module reach the root logger, whose console
handler writes to stderr. The CLI prints tables to stdout, so log lines
never mix with machine-readable output. A rotating log file can be added
for long batch runs.

The level comes from the LOG_LEVEL environment variable (a level name such
as DEBUG or warning, any case) unless the caller passes one; unknown names
fall back to INFO.

    from chat_export.logger_config import setup_logging
    setup_logging(log_file="parse.log")
"""

import logging
import logging.config
import os
from typing import Any, Dict, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def get_log_level() -> int:
    """Level named by LOG_LEVEL, or INFO."""
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), None)
    return level if isinstance(level, int) else logging.INFO


def _file_handler(level: int, log_file: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "standard",
        "filename": log_file,
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
        "encoding": "utf-8",
    }


def setup_logging(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Install the stderr handler and, optionally, a rotating file handler.

    Calling it again swaps the handlers of the previous call, so the CLI
    and the tests can reconfigure freely. Loggers that modules created at
    import time stay enabled.

    Args:
        level: Level for the package logger and all handlers; LOG_LEVEL
            decides when None.
        format_string: Record format, DEFAULT_FORMAT when None.
        log_file: Path of a log file rotated at LOG_FILE_MAX_BYTES.
    """
    if level is None:
        level = get_log_level()

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "standard",
            "stream": "ext://sys.stderr",
        },
    }
    if log_file:
        handlers["file"] = _file_handler(level, log_file)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": format_string or DEFAULT_FORMAT, "datefmt": DATE_FORMAT},
            },
            "handlers": handlers,
            "loggers": {
                "chat_export": {"level": level, "propagate": True},
            },
            "root": {"level": level, "handlers": list(handlers)},
        }
    )
