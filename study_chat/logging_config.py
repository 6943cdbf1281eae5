"""JSON logging for the chat core.

Every record becomes one JSON object per line. Call sites attach structured
fields with ``extra={"context": {...}}``; they are emitted under ``context``.
"""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Libraries whose INFO output is per-request noise.
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


class JSONFormatter(logging.Formatter):
    """Renders a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # Context may carry datetimes or exceptions.
        return json.dumps(entry, default=str, ensure_ascii=False)


def build_logging_config(log_level: str, log_file: str | Path, console: bool = True) -> dict:
    """dictConfig schema: JSON to a rotating file and, optionally, stdout."""
    handlers = {
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_file),
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "formatter": "json",
            "encoding": "utf-8",
        },
    }
    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": JSONFormatter}},
        "handlers": handlers,
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"level": log_level.upper(), "handlers": list(handlers)},
    }


def setup_logging(
    log_level: str | None = None,
    log_file: str | Path | None = None,
    console: bool = True,
) -> None:
    """
    Configure the root logger for the chat client.

    Args:
        log_level: Level name; defaults to the LOG_LEVEL env var, then INFO.
        log_file: Rotating log file; defaults to 04_logs/app.log.
        console: Also write JSON lines to stdout.
    """
    level = log_level or os.getenv("LOG_LEVEL", "INFO")
    path = Path(log_file) if log_file is not None else DEFAULT_LOG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(level, path, console))


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)
