"""
Krishna108 - Observability

Structured logging (structlog) and distributed tracing (OpenTelemetry).
"""
from observability.logging import (
    LogContext,
    LoggingConfig,
    PipelineLogger,
    bind_context,
    get_logger,
    setup_logging,
    shutdown_logging,
    unbind_context,
)
from observability.tracing import (
    TracingConfig,
    create_span,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
    span_decorator,
)

__all__ = [
    "LogContext",
    "LoggingConfig",
    "PipelineLogger",
    "bind_context",
    "unbind_context",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    "TracingConfig",
    "create_span",
    "get_tracer",
    "setup_tracing",
    "shutdown_tracing",
    "span_decorator",
]
