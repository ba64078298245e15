"""
Krishna108 - Structured Logging

structlog setup for the pipeline and the CLI. Every event carries the
service name, the environment and, inside a span, the OpenTelemetry
trace_id and span_id. Events render as JSON lines by default, or in the
colored console form when LOG_FORMAT is not "json". The stdlib root logger
gets the same level so SQLAlchemy and httpx output lands in one stream.

Usage:
    from observability.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Selected next reference", reference="Bhagavad Gita 2.14")
"""
from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from opentelemetry import trace
from structlog.types import EventDict, WrappedLogger

# Global state
_configured: bool = False


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    service_name: str = "krishna108"
    level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "json").lower() == "json"
    )
    enable_trace_context: bool = True
    log_to_console: bool = True
    log_to_file: bool = field(
        default_factory=lambda: os.getenv("LOG_TO_FILE", "false").lower() == "true"
    )
    log_file_path: Path = field(
        default_factory=lambda: Path(os.getenv("LOG_FILE", "./logs/krishna108.log"))
    )
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    include_timestamp: bool = True
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def _exception_summary(exc: Optional[BaseException]) -> Dict[str, Optional[str]]:
    if exc is None:
        return {"type": None, "message": None}
    return {"type": type(exc).__name__, "message": str(exc)}


def _span_ids() -> Optional[Dict[str, str]]:
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            return {
                "trace_id": format(ctx.trace_id, "032x"),
                "span_id": format(ctx.span_id, "016x"),
            }
    return None


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Copy trace_id and span_id of the active span into the event."""
    ids = _span_ids()
    if ids:
        event_dict.update(ids)
    return event_dict


def add_service_context(
    service_name: str,
    environment: str,
) -> structlog.types.Processor:
    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["environment"] = environment
        return event_dict

    return processor


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """UTC, ISO 8601."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def format_exception(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace exc_info with a {type, message} summary."""
    exc_info = event_dict.pop("exc_info", None)
    if isinstance(exc_info, BaseException):
        event_dict["exception"] = _exception_summary(exc_info)
    elif isinstance(exc_info, tuple):
        event_dict["exception"] = _exception_summary(exc_info[1])
    return event_dict


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Without a config this is a one-time default setup. An explicit config
    always reconfigures, replacing whatever defaults an earlier get_logger
    call installed.
    """
    global _configured

    if _configured and config is None:
        return

    config = config or LoggingConfig()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.environment),
    ]

    if config.include_timestamp:
        processors.append(add_timestamp)

    if config.enable_trace_context:
        processors.append(add_trace_context)

    processors.extend([
        format_exception,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ])

    if config.json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configure_stdlib_logging(config)

    _configured = True


def _configure_stdlib_logging(config: LoggingConfig) -> None:
    """Route stdlib records (SQLAlchemy, openai, httpx) to the same outputs."""
    level = getattr(logging, config.level, logging.INFO)
    handlers: list[logging.Handler] = []

    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        # structlog has already rendered the event into the message
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console_handler)

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(_JsonFormatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    # library chatter only at WARNING and above
    for noisy in ("httpx", "httpcore", "openai", "sqlalchemy.engine", "asyncio", "opentelemetry"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


class _JsonFormatter(logging.Formatter):
    """One JSON object per line for the rotating log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            **(_span_ids() or {}),
        }
        if record.exc_info:
            entry["exception"] = {
                **_exception_summary(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger; configures logging with defaults on first use."""
    if not _configured:
        setup_logging()

    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush and close logging handlers."""
    global _configured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.flush()
        handler.close()

    _configured = False


class LogContext:
    """Binds key/value pairs to every event logged inside the block; sync or async."""

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        bind_context(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self.context)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


def bind_context(**kwargs: Any) -> None:
    """
    Bind contextual variables to all subsequent log messages.

    Example:
        >>> bind_context(reference="Bhagavad Gita 2.14")
        >>> logger.info("Generating content")  # includes reference
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove contextual variables bound with bind_context."""
    structlog.contextvars.unbind_contextvars(*keys)


class PipelineLogger:
    """Logger specialized for daily post pipeline runs."""

    def __init__(self):
        self._logger = get_logger("krishna108.pipeline")

    def start_run(self, dry_run: bool) -> None:
        self._logger.info(
            "Starting post generation pipeline",
            dry_run=dry_run,
            component="pipeline",
        )

    def step(self, step: str, **fields: Any) -> None:
        self._logger.info(
            "Pipeline step completed",
            step=step,
            component="pipeline",
            **fields,
        )

    def step_failed(self, step: str, code: str, error: str) -> None:
        self._logger.error(
            "Pipeline step failed",
            step=step,
            code=code,
            error=error,
            component="pipeline",
        )

    def end_run(
        self,
        reference: str,
        duration: float,
        post_id: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> None:
        self._logger.info(
            "Post published successfully" if post_id else "Dry run completed",
            reference=reference,
            post_id=post_id,
            slug=slug,
            duration_seconds=round(duration, 3),
            component="pipeline",
        )
