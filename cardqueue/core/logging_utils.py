from __future__ import annotations

import datetime as dt
import json
import logging
import os
import sys
import uuid
from typing import Any, TextIO

from loguru import logger as loguru_logger

UTC = dt.UTC

# Standard LogRecord attributes that never belong in the structured payload
_STANDARD_FIELDS = frozenset(
    {
        "args",
        "msg",
        "name",
        "levelno",
        "levelname",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "message",
    }
)

_PERFORMANCE_FIELDS = frozenset(
    {"duration", "duration_seconds", "latency_ms", "request_duration", "delay_seconds"}
)

_QUEUE_FIELDS = frozenset(
    {"slot", "position", "item_id", "kind", "queue_length", "success_count", "error_count"}
)


class EnhancedJsonFormatter(logging.Formatter):
    """JSON formatter that groups structured ``extra`` fields by concern."""

    def __init__(self, include_location: bool = True, include_process_info: bool = False):
        super().__init__()
        self.include_location = include_location
        self.include_process_info = include_process_info
        self.hostname = os.uname().nodename if hasattr(os, "uname") else "unknown"

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": dt.datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
        }

        if self.include_location:
            base.update(
                {
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
            )

        if self.include_process_info:
            base.update(
                {
                    "process": record.process,
                    "thread": record.thread,
                    "thread_name": getattr(record, "threadName", "MainThread"),
                }
            )

        if record.exc_info:
            base["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if record.stack_info:
            base["stack_trace"] = record.stack_info

        extra_fields: dict[str, Any] = {}
        performance_fields: dict[str, Any] = {}
        queue_fields: dict[str, Any] = {}

        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _STANDARD_FIELDS or key in base:
                continue
            if key == "correlation_id":
                continue
            if key in _PERFORMANCE_FIELDS:
                performance_fields[key] = value
            elif key in _QUEUE_FIELDS:
                queue_fields[key] = value
            else:
                extra_fields[key] = value

        if performance_fields:
            base["performance"] = performance_fields
        if queue_fields:
            base["queue"] = queue_fields
        if extra_fields:
            base["extra"] = extra_fields

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            base["correlation_id"] = correlation_id

        return json.dumps(
            base, ensure_ascii=False, default=self._json_serializer, separators=(",", ":")
        )

    def _json_serializer(self, obj: Any) -> str:
        """Custom JSON serializer for non-standard types."""
        if hasattr(obj, "isoformat"):
            return obj.isoformat()
        if hasattr(obj, "__dict__"):
            return f"<{obj.__class__.__name__}>"
        return str(obj)


class _LoguruInterceptHandler(logging.Handler):
    """Bridge stdlib records (with their extras) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level_to_use: int | str
        try:
            level_to_use = loguru_logger.level(record.levelname).name
        except ValueError:
            level_to_use = record.levelno

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _STANDARD_FIELDS
        }
        loguru_logger.bind(**extra).opt(depth=6, exception=record.exc_info).log(
            level_to_use, record.getMessage()
        )


def setup_json_logging(
    level: str = "INFO",
    *,
    include_location: bool = True,
    include_process_info: bool = False,
    use_loguru: bool = False,
    log_file: str | None = None,
    max_file_size: str = "20 MB",
    retention: str = "14 days",
    stream: TextIO | None = None,
) -> None:
    """Configure structured JSON logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_location: Include module/function/line in each record
        include_process_info: Include process/thread identifiers
        use_loguru: Route stdlib records through loguru sinks instead of the
            stdlib JSON formatter
        log_file: Optional log file path
        max_file_size: Rotation size for the loguru file sink
        retention: Retention period for the loguru file sink
        stream: Console stream (stdout when omitted)
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(lvl)

    if use_loguru:
        loguru_logger.remove()
        loguru_logger.add(
            stream or sys.stdout, level=level.upper(), serialize=True, backtrace=False
        )
        if log_file:
            loguru_logger.add(
                log_file,
                level=level.upper(),
                serialize=True,
                rotation=max_file_size,
                retention=retention,
                compression="gz",
            )
        root.addHandler(_LoguruInterceptHandler())
    else:
        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setFormatter(
            EnhancedJsonFormatter(
                include_location=include_location, include_process_info=include_process_info
            )
        )
        root.addHandler(console_handler)

        if log_file:
            from logging.handlers import RotatingFileHandler

            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=20 * 1024 * 1024,
                backupCount=5,
            )
            file_handler.setFormatter(
                EnhancedJsonFormatter(
                    include_location=include_location, include_process_info=include_process_info
                )
            )
            root.addHandler(file_handler)

    # httpx logs every request at INFO
    for noisy_logger in ("httpx", "httpcore", "apscheduler.executors.default"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "logging_initialized",
        extra={"setup_config": {"level": level, "use_loguru": use_loguru, "log_file": log_file}},
    )


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing one sync pass across logs."""
    return uuid.uuid4().hex[:12]


def truncate_log_content(content: str | None, max_length: int = 80) -> str | None:
    """Truncate card content for logging.

    Args:
        content: The content to potentially truncate
        max_length: Maximum length before truncation

    Returns:
        Truncated content with ellipsis if truncated, or original content if short enough
    """
    if not content:
        return content
    if len(content) <= max_length:
        return content
    if max_length > 20:
        cut = content[: max_length - 3]
        last_space = cut.rfind(" ")
        if last_space > max_length // 2:
            cut = cut[:last_space]
        return f"{cut}..."
    return content[:max_length]
