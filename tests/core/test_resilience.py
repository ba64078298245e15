"""
Tests for core/resilience.py and core/errors.py.
"""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from core.errors import (
    ConcurrentRunError,
    ContentGenerationError,
    DatabaseError,
    DevotionalError,
    DuplicateSlugError,
    ErrorContext,
    ExhaustedCanonError,
    PipelineStepError,
    ReferenceFormatError,
)
from core.resilience import RetryConfig, RetryPolicy, SingleFlight


# =============================================================================
# RetryPolicy Tests
# =============================================================================

class TestRetryConfig:

    def test_fixed_delay(self):
        policy = RetryPolicy(RetryConfig.fixed(max_attempts=2, delay=2.0))
        assert policy.calculate_delay(0) == 2.0
        assert policy.calculate_delay(5) == 2.0

    def test_exponential_delay_capped(self):
        policy = RetryPolicy(RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False))
        assert policy.calculate_delay(0) == 1.0
        assert policy.calculate_delay(2) == 4.0
        assert policy.calculate_delay(10) == 5.0

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)


class TestRetryPolicy:

    @pytest.mark.asyncio
    async def test_succeeds_after_retry(self):
        func = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])
        retries = []
        policy = RetryPolicy(
            RetryConfig.fixed(max_attempts=2, delay=2.0),
            on_retry=lambda attempt, exc: retries.append((attempt, str(exc))),
        )

        with patch("core.resilience.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await policy.wrap(func)()

        assert result == "ok"
        assert retries == [(1, "reset")]
        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_raises_last_error_when_exhausted(self):
        func = AsyncMock(side_effect=[ConnectionError("first"), ConnectionError("second")])
        policy = RetryPolicy(RetryConfig.fixed(max_attempts=2, delay=0.0))

        with patch("core.resilience.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(ConnectionError, match="second"):
                await policy.wrap(func)()

        # no wait after the final attempt
        assert sleep.await_count == 1
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self):
        func = AsyncMock(side_effect=KeyError("missing"))
        policy = RetryPolicy(RetryConfig.fixed(
            max_attempts=3, delay=0.0, retryable_exceptions={ConnectionError},
        ))

        with pytest.raises(KeyError):
            await policy.wrap(func)()
        assert func.await_count == 1


# =============================================================================
# SingleFlight Tests
# =============================================================================

class TestSingleFlight:

    @pytest.mark.asyncio
    async def test_second_caller_rejected(self):
        gate = SingleFlight("daily_post")
        started = asyncio.Event()
        release = asyncio.Event()

        async def hold():
            async with gate:
                started.set()
                await release.wait()

        task = asyncio.create_task(hold())
        await started.wait()

        with pytest.raises(ConcurrentRunError) as exc_info:
            async with gate:
                pass

        release.set()
        await task

        assert exc_info.value.gate == "daily_post"
        assert gate.get_metrics()["rejected"] == 1
        assert not gate.in_flight

    @pytest.mark.asyncio
    async def test_released_after_error(self):
        gate = SingleFlight("daily_post")

        with pytest.raises(RuntimeError):
            async with gate:
                raise RuntimeError("failed run")

        async with gate:
            assert gate.in_flight


# =============================================================================
# Error Hierarchy Tests
# =============================================================================

class TestErrors:

    def test_codes(self):
        assert ExhaustedCanonError("x").error_code == "VERSE_SELECTION_FAILED"
        assert ContentGenerationError("x").error_code == "CONTENT_GENERATION_FAILED"
        assert DuplicateSlugError("x", slug="s").error_code == "DUPLICATE_SLUG"

    def test_pipeline_step_error_takes_step_code(self):
        error = PipelineStepError("Failed to save post", code="DATABASE_ERROR", step="save", details="boom")
        assert error.error_code == "DATABASE_ERROR"
        data = error.to_dict()
        assert data["step"] == "save"
        assert data["details"] == "boom"

    def test_str_includes_cause(self):
        error = DevotionalError("outer", cause=ValueError("inner"))
        assert str(error) == "[K108_ERROR] outer [caused by: inner]"

    def test_with_context(self):
        error = DevotionalError("x").with_context(reference="Bhagavad Gita 2.14")
        assert error.context.metadata == {"reference": "Bhagavad Gita 2.14"}

    def test_context_serialization(self):
        error = DevotionalError("x", context=ErrorContext(operation="save_post", component="db"))
        assert error.to_dict()["context"]["operation"] == "save_post"


class TestErrorSpanRecording:

    @pytest.fixture
    def span_tracer(self):
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return provider.get_tracer("test"), exporter

    def test_warning_adds_event_without_failing_span(self, span_tracer):
        tracer, exporter = span_tracer
        with tracer.start_as_current_span("select"):
            ReferenceFormatError("Verse reference must be dot separated integers: 'junk'", text="junk")

        span = exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.UNSET
        assert span.events[0].name == "error.handled"
        assert span.events[0].attributes["error.code"] == "REFERENCE_FORMAT_ERROR"

    def test_error_marks_span_failed(self, span_tracer):
        tracer, exporter = span_tracer
        with tracer.start_as_current_span("save"):
            DatabaseError("connection refused")

        span = exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert span.attributes["error.code"] == "DATABASE_ERROR"
