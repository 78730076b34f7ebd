"""Logging setup with structured output and job context propagation.

Every record carries the name of the scheduled job that emitted it and
the id of that job run, so interleaved output from concurrent jobs can be
told apart:

    12:00:01 [INFO] [feeds:3f2a9c1d] pipeline: Source processed | source=... stored=2

Usage:
    >>> from observability.logging import setup_logging, set_job_context
    >>> setup_logging(config)
    >>> set_job_context("feeds", run_id="3f2a9c1d")
    >>> logger.info("Feed tick started")  # Includes job and run_id
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

LOG_FILE_NAME = "curator.log"

# Third-party loggers capped at WARNING
QUIET_LOGGERS = ("aiohttp", "httpx", "httpcore", "openai", "asyncio")

_UNSET = "-"

job_var: contextvars.ContextVar[str] = contextvars.ContextVar("job", default=_UNSET)
run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default=_UNSET)
trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default=_UNSET)

# LogRecord attributes that are never copied as JSON extras
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "job", "run_id", "trace_id", "message", "asctime", "taskName",
}


def set_job_context(job: str, run_id: str) -> None:
    """Tag subsequent records in this task with a job name and run id.

    asyncio tasks copy the context at creation, so each job task keeps
    its own values.
    """
    job_var.set(job)
    run_id_var.set(run_id)


def set_trace_context(trace_id: str) -> None:
    """Attach the active Logfire trace id to subsequent records."""
    trace_id_var.set(trace_id)


def clear_context() -> None:
    for var in (job_var, run_id_var, trace_id_var):
        var.set(_UNSET)


class ContextFilter(logging.Filter):
    """Injects job, run_id and trace_id into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.job = job_var.get()
        record.run_id = run_id_var.get()
        record.trace_id = trace_id_var.get()
        return True


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp, level, logger, job, run_id, message; plus trace_id
    when tracing is on, source location for WARNING and above, exception
    text, and anything passed through extra=.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "job": getattr(record, "job", _UNSET),
            "run_id": getattr(record, "run_id", _UNSET),
            "message": record.getMessage(),
        }
        if getattr(record, "trace_id", _UNSET) != _UNSET:
            entry["trace_id"] = record.trace_id
        if record.levelno >= logging.WARNING:
            entry["source"] = {"file": record.filename, "line": record.lineno, "function": record.funcName}
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update({k: _jsonable(v) for k, v in vars(record).items() if k not in _RESERVED})
        return json.dumps(entry, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """TIMESTAMP [LEVEL] [job:run_id] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(job)s:%(run_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def _formatters(log_format: str) -> tuple[logging.Formatter, logging.Formatter]:
    """(console, file) formatters for LOG_FORMAT."""
    if log_format == "json":
        return JsonFormatter(), JsonFormatter()
    return TextFormatter(), TextFormatter(include_date=True)


def _file_handler(config: Any) -> logging.Handler | None:
    """Rotating handler under LOG_DIR, or None when the directory is unusable.

    Size-based rotation when LOG_MAX_BYTES > 0, nightly otherwise.
    """
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        probe = config.log_dir / ".write_test"
        probe.touch()
        probe.unlink()
    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Logging to console only.",
            file=sys.stderr,
        )
        return None

    path = config.log_dir / LOG_FILE_NAME
    if config.log_max_bytes > 0:
        return RotatingFileHandler(
            path, maxBytes=config.log_max_bytes, backupCount=config.log_backup_count, encoding="utf-8"
        )
    return TimedRotatingFileHandler(
        path, when="midnight", backupCount=config.log_backup_count, encoding="utf-8"
    )


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Replace the root handlers with console and file logging.

    Args:
        config: Application configuration with logging settings
        verbose: Use DEBUG for the console regardless of LOG_LEVEL

    Returns:
        True if file logging is enabled, False if console-only
    """
    context_filter = ContextFilter()
    console_fmt, file_fmt = _formatters(config.log_format)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO))
    console.setFormatter(console_fmt)
    console.addFilter(context_filter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(logging.DEBUG)
    root.addHandler(console)

    file_handler = _file_handler(config)
    if file_handler is not None:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_fmt)
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return file_handler is not None
