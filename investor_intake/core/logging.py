"""
Logging configuration.

- **Console handler** — coloured, human-readable output for local runs.
- **Rotating JSON file** — ``investor-intake.log``, one JSON object per line
  for log aggregation.
- **Rotating error file** — ``investor-intake-error.log``, ERROR and above
  only, for alerting.
- **Request-ID correlation** — ``RequestIDMiddleware`` stores the current
  request ID in a context variable; :class:`RequestIDFilter` copies it onto
  every record emitted while that request is being served, including
  records from the service and repository layers.

Usage:
    Call ``setup_logging()`` once at startup (``main.py``).  Modules log via
    ``logging.getLogger(__name__)``.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from investor_intake.core.config import settings

LOG_FILE_NAME = "investor-intake.log"
ERROR_LOG_FILE_NAME = "investor-intake-error.log"

# Set per request by RequestIDMiddleware; ``None`` outside a request.
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Extra attributes promoted to top-level JSON keys when present on a record.
_EXTRA_FIELDS = (
    "status_code",
    "method",
    "path",
    "elapsed_ms",
    "investor_id",
    "intake_state",
    "files_count",
)


class RequestIDFilter(logging.Filter):
    """Attach the active request ID (if any) to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """
    Single-line JSON records::

        {"timestamp": "2025-06-01T10:30:00.123+00:00", "level": "INFO",
         "logger": "investor_intake.services.intake_service",
         "message": "Created investor ...", "request_id": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["request_id"] = request_id

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Coloured ``time | LEVEL | logger [rid] | message`` lines."""

    COLOURS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.COLOURS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        request_id = getattr(record, "request_id", None)
        rid = f" [{request_id[:8]}]" if request_id else ""

        line = (
            f"{timestamp} | {colour}{record.levelname:<8}{self.RESET} | "
            f"{record.name}{rid} | {record.getMessage()}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _rotating_handler(path: str, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=settings.LOG_FILE_MAX_BYTES,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIDFilter())
    return handler


def setup_logging(log_dir: Optional[str] = None) -> None:
    """
    Configure the root logger.  Idempotent: returns early if the root logger
    already has handlers.

    ``DEBUG=true`` forces DEBUG everywhere (and SQL echo on the engine);
    otherwise ``LOG_LEVEL`` applies.  Files go to ``log_dir`` or
    ``settings.LOG_DIR``.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level = (
        logging.DEBUG
        if settings.DEBUG
        else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    )
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.addFilter(RequestIDFilter())
    root_logger.addHandler(console_handler)

    directory = log_dir or settings.LOG_DIR
    os.makedirs(directory, exist_ok=True)
    log_path = os.path.join(directory, LOG_FILE_NAME)
    root_logger.addHandler(_rotating_handler(log_path, level))
    root_logger.addHandler(
        _rotating_handler(os.path.join(directory, ERROR_LOG_FILE_NAME), logging.ERROR)
    )

    # ── Quieten third-party loggers ──
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if settings.DEBUG else logging.WARNING
    )
    logging.getLogger("multipart").setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialized: level=%s, file=%s, max_size=%s MB, backups=%d",
        logging.getLevelName(level),
        log_path,
        settings.LOG_FILE_MAX_BYTES // (1024 * 1024),
        settings.LOG_FILE_BACKUP_COUNT,
    )
