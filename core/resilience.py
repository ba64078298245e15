"""
Krishna108 - Resilience Patterns

Guards around the pipeline's external collaborators:
- RetryPolicy: bounded retries with a fixed or exponential delay, used for
  language model calls
- SingleFlight: admission gate that allows one in-flight pipeline run

Every retry attempt runs in its own OpenTelemetry span.
"""

from __future__ import annotations

import asyncio
import functools
import random
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Optional,
    Set,
    Type,
    TypeVar,
    ParamSpec,
)

from opentelemetry import trace

from core.errors import ConcurrentRunError

T = TypeVar("T")
P = ParamSpec("P")

tracer = trace.get_tracer(__name__)


@dataclass
class RetryConfig:
    """How many attempts, how long to wait between them, and which errors count."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Set[Type[Exception]] = field(
        default_factory=lambda: {Exception}
    )
    non_retryable_exceptions: Set[Type[Exception]] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")

    @classmethod
    def fixed(cls, max_attempts: int, delay: float, **kwargs: Any) -> "RetryConfig":
        """Constant delay between attempts, no jitter."""
        return cls(
            max_attempts=max_attempts,
            base_delay=delay,
            max_delay=delay,
            exponential_base=1.0,
            jitter=False,
            **kwargs,
        )


class RetryPolicy:
    """
    Retries an async callable according to a RetryConfig.

    on_retry is called with the 1-based attempt number and the exception
    after every failed attempt, including the last one. The final exception
    is re-raised unchanged.

    Usage:
        policy = RetryPolicy(RetryConfig.fixed(max_attempts=2, delay=2.0))

        @policy.wrap
        async def call_model():
            ...
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        on_retry: Optional[Callable[[int, Exception], None]] = None,
    ):
        self.config = config or RetryConfig()
        self.on_retry = on_retry

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait after the 0-based attempt."""
        cfg = self.config
        delay = min(cfg.base_delay * cfg.exponential_base ** attempt, cfg.max_delay)
        if cfg.jitter:
            delay *= 0.5 + random.random()
        return delay

    def is_retryable(self, exception: Exception) -> bool:
        if isinstance(exception, tuple(self.config.non_retryable_exceptions)):
            return False
        return isinstance(exception, tuple(self.config.retryable_exceptions))

    def wrap(
        self,
        func: Callable[P, Awaitable[T]],
    ) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempts = self.config.max_attempts
            for attempt in range(attempts):
                with tracer.start_as_current_span(f"retry.attempt_{attempt}") as span:
                    span.set_attribute("retry.attempt", attempt)
                    span.set_attribute("retry.max_attempts", attempts)
                    try:
                        return await func(*args, **kwargs)
                    except Exception as e:
                        span.set_attribute("retry.exception", type(e).__name__)
                        if self.on_retry is not None:
                            self.on_retry(attempt + 1, e)
                        if attempt == attempts - 1 or not self.is_retryable(e):
                            raise
                        delay = self.calculate_delay(attempt)
                        span.set_attribute("retry.delay_seconds", delay)
                await asyncio.sleep(delay)
            raise AssertionError("unreachable")

        return wrapper


class SingleFlight:
    """
    Admission gate that lets exactly one run through at a time.

    A bulkhead with one slot and no waiting queue: a caller arriving while
    a run is in flight is rejected with ConcurrentRunError instead of
    queueing behind it.

    Usage:
        gate = SingleFlight("daily_post")

        async with gate:
            await publish()
    """

    def __init__(self, name: str):
        self.name = name
        self._in_flight = False
        self._lock = asyncio.Lock()
        self._rejected = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def __aenter__(self) -> "SingleFlight":
        async with self._lock:
            if self._in_flight:
                self._rejected += 1
                raise ConcurrentRunError(
                    message=f"'{self.name}' is already running",
                    gate=self.name,
                )
            self._in_flight = True
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> bool:
        async with self._lock:
            self._in_flight = False
        return False

    def get_metrics(self) -> Dict[str, Any]:
        """Get current gate metrics."""
        return {
            "name": self.name,
            "in_flight": self._in_flight,
            "rejected": self._rejected,
        }
