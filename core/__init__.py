"""
Krishna108 - Core Module

Foundational components shared by every other package:
- Unified error handling
- Resilience patterns (retry, single flight)

Usage:
    from core import DevotionalError, RetryPolicy, SingleFlight
"""
from core.errors import (
    ErrorSeverity,
    ErrorContext,
    DevotionalError,
    ConfigError,
    OutOfRangeError,
    ReferenceFormatError,
    ExhaustedCanonError,
    DatabaseError,
    DuplicateSlugError,
    ContentGenerationError,
    ContentValidationError,
    PipelineStepError,
    ConcurrentRunError,
)
from core.resilience import RetryConfig, RetryPolicy, SingleFlight

__all__ = [
    "ErrorSeverity",
    "ErrorContext",
    "DevotionalError",
    "ConfigError",
    "OutOfRangeError",
    "ReferenceFormatError",
    "ExhaustedCanonError",
    "DatabaseError",
    "DuplicateSlugError",
    "ContentGenerationError",
    "ContentValidationError",
    "PipelineStepError",
    "ConcurrentRunError",
    "RetryConfig",
    "RetryPolicy",
    "SingleFlight",
]
