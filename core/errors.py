"""
Krishna108 - Unified Error Handling

Provides the error hierarchy shared by the verse selector, the content
pipeline and the persistence layer.

Features:
- Hierarchical exception classes with context preservation
- Error severity levels for prioritized handling
- Structured error context for debugging
- OpenTelemetry integration for error tracing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    """Error severity levels for prioritized handling."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    FATAL = "fatal"      # Unrecoverable, requires operator attention


_NON_FAILING_SEVERITIES = frozenset({
    ErrorSeverity.DEBUG,
    ErrorSeverity.INFO,
    ErrorSeverity.WARNING,
})


@dataclass
class ErrorContext:
    """Structured context for error debugging and tracing."""

    operation: str
    component: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    reference: Optional[str] = None
    step: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            "operation": self.operation,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "reference": self.reference,
            "step": self.step,
            "metadata": self.metadata,
            "stack_trace": self.stack_trace,
        }


class DevotionalError(Exception):
    """
    Base exception for all Krishna108 errors.

    Provides:
    - Structured error context
    - Severity level
    - Chained exception support
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "K108_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.timestamp = datetime.now(timezone.utc)

        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if not (span and span.is_recording()):
            return
        if self.severity in _NON_FAILING_SEVERITIES:
            # handled conditions leave the span status alone
            span.add_event(
                "error.handled",
                {"error.code": self.error_code, "error.message": self.message},
            )
            return
        span.set_status(Status(StatusCode.ERROR, self.message))
        span.record_exception(self)
        span.set_attribute("error.code", self.error_code)
        span.set_attribute("error.severity", self.severity.value)
        span.set_attribute("error.recoverable", self.recoverable)
        if self.context:
            span.set_attribute("error.component", self.context.component)
            span.set_attribute("error.operation", self.context.operation)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f" (component: {self.context.component})")
        if self.cause:
            parts.append(f" [caused by: {self.cause}]")
        return "".join(parts)

    def with_context(self, **kwargs: Any) -> "DevotionalError":
        """Add additional context to the error."""
        if self.context:
            self.context.metadata.update(kwargs)
        else:
            self.context = ErrorContext(
                operation="unknown",
                component="unknown",
                metadata=kwargs
            )
        return self


class ConfigError(DevotionalError):
    """Configuration-related errors."""

    error_code = "CONFIG_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.actual_value = actual_value


class OutOfRangeError(DevotionalError):
    """A chapter outside the scripture structure was requested."""

    error_code = "OUT_OF_RANGE"
    default_severity = ErrorSeverity.FATAL

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        chapter: Optional[int] = None,
        chapter_count: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.source = source
        self.chapter = chapter
        self.chapter_count = chapter_count


class ReferenceFormatError(DevotionalError):
    """Stored verse reference text does not follow the chapter.verse format."""

    error_code = "REFERENCE_FORMAT_ERROR"
    default_severity = ErrorSeverity.WARNING

    def __init__(
        self,
        message: str,
        text: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.text = text


class ExhaustedCanonError(DevotionalError):
    """No eligible reference was found within the selection safety bound."""

    error_code = "VERSE_SELECTION_FAILED"
    default_severity = ErrorSeverity.FATAL

    def __init__(
        self,
        message: str,
        attempts: Optional[int] = None,
        window_days: Optional[int] = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("recoverable", False)
        kwargs.setdefault("suggestions", [
            "Check the scripture index for a truncated structure",
            "Check that the recency window is shorter than the canon",
        ])
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.window_days = window_days


class DatabaseError(DevotionalError):
    """Database operation errors."""

    error_code = "DATABASE_ERROR"
    default_severity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.operation = operation


class DuplicateSlugError(DatabaseError):
    """A post with the same slug already exists."""

    error_code = "DUPLICATE_SLUG"

    def __init__(self, message: str, slug: Optional[str] = None, **kwargs: Any):
        super().__init__(message, operation="save_post", **kwargs)
        self.slug = slug


class ContentGenerationError(DevotionalError):
    """Language model call failed or returned unusable output."""

    error_code = "CONTENT_GENERATION_FAILED"
    default_severity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        attempts: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.model = model
        self.attempts = attempts


class ContentValidationError(DevotionalError):
    """Generated content failed field, length or word count checks."""

    error_code = "VALIDATION_ERROR"
    default_severity = ErrorSeverity.WARNING

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.errors = errors or []


class PipelineStepError(DevotionalError):
    """A step of the daily post pipeline failed."""

    error_code = "PIPELINE_ERROR"
    default_severity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        step: Optional[str] = None,
        details: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        if code:
            self.error_code = code
        self.step = step
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["step"] = self.step
        data["details"] = self.details
        return data


class ConcurrentRunError(DevotionalError):
    """Another pipeline run is already in flight."""

    error_code = "CONCURRENT_RUN"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, message: str, gate: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)
        self.gate = gate
