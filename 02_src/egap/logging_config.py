"""JSON logging for the ingress and worker processes."""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH


class JSONFormatter(logging.Formatter):
    """One JSON object per line, tagged with the process role."""

    def __init__(self, service: str | None = None):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if self.service:
            log_data["service"] = self.service

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # traceId, messageId, audit snapshots and the like
        if hasattr(record, "context"):
            log_data["context"] = record.context

        return json.dumps(log_data, default=str)


def log_file_for(service: str | None) -> Path:
    """04_logs/<service>.log, or 04_logs/app.log without a role."""
    if service:
        return DEFAULT_LOG_PATH.with_name(f"{service}.log")
    return DEFAULT_LOG_PATH


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service: str | None = None,
) -> None:
    """
    Route all loggers to stdout and a rotating file, both as JSON.

    Ingress and worker usually share a host, so each role gets its own file
    and its own "service" field.

    Args:
        log_level: Falls back to LOG_LEVEL, then INFO.
        log_file: Overrides the per-role file.
        service: Process role ("ingress", "worker", "local").
    """
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")
    log_path = Path(log_file) if log_file else log_file_for(service)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "egap.logging_config.JSONFormatter",
                    "service": service,
                },
            },
            "handlers": {
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": str(log_path),
                    "maxBytes": 10 * 1024 * 1024,  # 10 MB
                    "backupCount": 5,
                    "formatter": "json",
                    "encoding": "utf-8",
                },
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "level": log_level.upper(),
                "handlers": ["file", "console"],
            },
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
