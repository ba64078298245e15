"""
Tests for domain/verse_selector.py - sequencer, recency filter and selector.
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from core.errors import ExhaustedCanonError, OutOfRangeError
from data.schemas import PublicationRecord, Scripture, VerseReference
from data.scripture_index import ScriptureIndex
from domain.verse_selector import (
    MAX_SELECTION_ATTEMPTS,
    RECENCY_WINDOW_DAYS,
    RecencyWindow,
    VerseSelector,
    next_reference,
    was_published_recently,
)


BG = Scripture.BHAGAVAD_GITA
SB = Scripture.SRIMAD_BHAGAVATAM


def ref(source, chapter, verse):
    return VerseReference(source, chapter, verse)


class TestNextReference:
    """Ring successor."""

    def test_simple_successor(self):
        assert next_reference(ref(BG, 2, 13)) == ref(BG, 2, 14)

    def test_chapter_rollover(self):
        assert next_reference(ref(BG, 1, 46)) == ref(BG, 2, 1)

    def test_gita_wraps_to_bhagavatam(self):
        assert next_reference(ref(BG, 18, 78)) == ref(SB, 1, 1)

    def test_bhagavatam_wraps_to_gita(self):
        assert next_reference(ref(SB, 19, 43)) == ref(BG, 1, 1)

    def test_bhagavatam_chapter_rollover(self):
        assert next_reference(ref(SB, 1, 23)) == ref(SB, 2, 1)

    def test_unknown_chapter_raises(self):
        with pytest.raises(OutOfRangeError):
            next_reference(ref(BG, 19, 1))

    def test_verse_past_chapter_end_rolls_over(self):
        # 2.80 is beyond the 72 verses of chapter 2
        assert next_reference(ref(BG, 2, 80)) == ref(BG, 3, 1)

    def test_custom_index(self):
        index = ScriptureIndex.from_counts({BG: [2], SB: [1, 1]})
        assert next_reference(ref(BG, 1, 1), index) == ref(BG, 1, 2)
        assert next_reference(ref(BG, 1, 2), index) == ref(SB, 1, 1)
        assert next_reference(ref(SB, 1, 1), index) == ref(SB, 2, 1)
        assert next_reference(ref(SB, 2, 1), index) == ref(BG, 1, 1)


class TestWasPublishedRecently:
    """Recency filter."""

    def test_empty_history(self, now):
        assert was_published_recently(ref(BG, 2, 13), 365, [], now=now) is False

    def test_recent_match(self, record_factory, now):
        history = [record_factory(BG, "2.13", days_ago=30)]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is True

    def test_old_match_ignored(self, record_factory, now):
        history = [record_factory(BG, "2.13", days_ago=400)]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is False

    def test_boundary_counts_as_recent(self, record_factory, now):
        history = [record_factory(BG, "2.13", days_ago=365)]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is True

    def test_just_past_boundary(self, now):
        history = [PublicationRecord("Bhagavad Gita", "2.13", now - timedelta(days=365, seconds=1))]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is False

    def test_other_scripture_does_not_match(self, record_factory, now):
        history = [record_factory(SB, "2.13", days_ago=1)]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is False

    def test_three_part_reference_uses_first_and_last(self, record_factory, now):
        history = [record_factory(SB, "1.7.3", days_ago=1)]
        assert was_published_recently(ref(SB, 1, 3), 365, history, now=now) is True
        assert was_published_recently(ref(SB, 1, 7), 365, history, now=now) is False

    @pytest.mark.parametrize("bad", ["", "abc", "2", "2.x"])
    def test_unreadable_reference_never_matches(self, record_factory, now, bad):
        history = [record_factory(BG, bad, days_ago=1)]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is False

    def test_unknown_source_never_matches(self, record_factory, now):
        history = [record_factory("Ramayana", "2.13", days_ago=1)]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is False

    def test_source_whitespace_tolerated(self, record_factory, now):
        history = [record_factory(" Bhagavad Gita ", "2.13", days_ago=1)]
        assert was_published_recently(ref(BG, 2, 13), 365, history, now=now) is True


class TestRecencyWindow:

    def test_membership(self, record_factory, now):
        history = [
            record_factory(BG, "2.13", days_ago=10),
            record_factory(BG, "2.14", days_ago=500),
            record_factory(BG, "junk", days_ago=1),
        ]
        window = RecencyWindow(history, days=365, now=now)
        assert ref(BG, 2, 13) in window
        assert ref(BG, 2, 14) not in window
        assert len(window) == 1


class TestVerseSelector:
    """Selection against an in-memory history."""

    def _selector(self, repository, now, **kwargs):
        return VerseSelector(history=repository, clock=lambda: now, **kwargs)

    def test_defaults(self):
        assert RECENCY_WINDOW_DAYS == 365
        assert MAX_SELECTION_ATTEMPTS == 1000

    @pytest.mark.asyncio
    async def test_bootstrap_returns_ring_start(self, repository, now):
        assert await self._selector(repository, now).select_next() == ref(BG, 1, 1)
        # no history means no second read
        assert repository.reads == 1

    @pytest.mark.asyncio
    async def test_simple_successor(self, repository, now):
        repository.add(BG, 2, 13, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(BG, 2, 14)

    @pytest.mark.asyncio
    async def test_chapter_rollover(self, repository, now):
        repository.add(BG, 1, 46, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(BG, 2, 1)

    @pytest.mark.asyncio
    async def test_gita_to_bhagavatam(self, repository, now):
        repository.add(BG, 18, 78, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(SB, 1, 1)

    @pytest.mark.asyncio
    async def test_bhagavatam_to_gita(self, repository, now):
        repository.add(SB, 19, 43, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(BG, 1, 1)

    @pytest.mark.asyncio
    async def test_skips_recent_successor(self, repository, now):
        repository.add(BG, 2, 14, days_ago=100)
        repository.add(BG, 2, 13, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(BG, 2, 15)

    @pytest.mark.asyncio
    async def test_skips_several_recent(self, repository, now):
        repository.add(BG, 2, 14, days_ago=200)
        repository.add(BG, 2, 15, days_ago=150)
        repository.add(BG, 2, 16, days_ago=100)
        repository.add(BG, 2, 13, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(BG, 2, 17)

    @pytest.mark.asyncio
    async def test_old_publication_not_skipped(self, repository, now):
        repository.add(BG, 2, 14, days_ago=400)
        repository.add(BG, 2, 13, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(BG, 2, 14)

    @pytest.mark.asyncio
    async def test_exact_window_boundary_is_skipped(self, repository, now):
        repository.add(BG, 2, 14, days_ago=365)
        repository.add(BG, 2, 13, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(BG, 2, 15)

    @pytest.mark.asyncio
    async def test_skip_crosses_scripture_boundary(self, repository, now):
        repository.add(SB, 1, 1, days_ago=50)
        repository.add(BG, 18, 78, days_ago=1)
        assert await self._selector(repository, now).select_next() == ref(SB, 1, 2)

    @pytest.mark.asyncio
    async def test_idempotent(self, repository, now):
        repository.add(BG, 2, 14, days_ago=30)
        repository.add(BG, 2, 13, days_ago=1)
        selector = self._selector(repository, now)
        first = await selector.select_next()
        second = await selector.select_next()
        assert first == second == ref(BG, 2, 15)

    @pytest.mark.asyncio
    async def test_at_most_two_history_reads(self, repository, now):
        repository.add(BG, 2, 13, days_ago=1)
        await self._selector(repository, now).select_next()
        assert repository.reads == 2

    @pytest.mark.asyncio
    async def test_exhausted_canon_raises(self, repository, now):
        index = ScriptureIndex.from_counts({BG: [2], SB: [1]})
        for days_ago, (source, verse) in enumerate([(SB, 1), (BG, 2), (BG, 1)], start=1):
            repository.add(source, 1, verse, days_ago=days_ago * 10)
        selector = self._selector(repository, now, index=index, max_attempts=10)

        with pytest.raises(ExhaustedCanonError) as exc_info:
            await selector.select_next()

        assert exc_info.value.error_code == "VERSE_SELECTION_FAILED"
        assert exc_info.value.attempts == 10
        assert exc_info.value.recoverable is False

    @pytest.mark.asyncio
    async def test_bound_allows_exactly_max_skips(self, repository, now):
        # Three recent successors, a bound of three: the fourth candidate is returned
        repository.add(BG, 2, 14, days_ago=30)
        repository.add(BG, 2, 15, days_ago=20)
        repository.add(BG, 2, 16, days_ago=10)
        repository.add(BG, 2, 13, days_ago=1)
        selector = self._selector(repository, now, max_attempts=3)
        assert await selector.select_next() == ref(BG, 2, 17)

    @pytest.mark.asyncio
    async def test_bound_exceeded_by_one(self, repository, now):
        repository.add(BG, 2, 14, days_ago=30)
        repository.add(BG, 2, 15, days_ago=20)
        repository.add(BG, 2, 16, days_ago=10)
        repository.add(BG, 2, 13, days_ago=1)
        selector = self._selector(repository, now, max_attempts=2)
        with pytest.raises(ExhaustedCanonError):
            await selector.select_next()

    @pytest.mark.asyncio
    async def test_history_errors_propagate(self, repository, now):
        repository.fail_with = ConnectionError("database unreachable")
        with pytest.raises(ConnectionError):
            await self._selector(repository, now).select_next()

    @pytest.mark.asyncio
    async def test_custom_window(self, repository, now):
        repository.add(BG, 2, 14, days_ago=40)
        repository.add(BG, 2, 13, days_ago=1)
        assert await self._selector(repository, now, window_days=30).select_next() == ref(BG, 2, 14)

    @pytest.mark.asyncio
    async def test_is_recent(self, repository, now):
        repository.add(BG, 2, 13, days_ago=5)
        selector = self._selector(repository, now)
        assert await selector.is_recent(ref(BG, 2, 13)) is True
        assert await selector.is_recent(ref(BG, 2, 12)) is False

    @pytest.mark.asyncio
    async def test_unreadable_history_row_leaves_span_ok(self, repository, now):
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        repository.add(BG, 2, 14, days_ago=3)
        repository.add(BG, 2, 13, days_ago=1)
        repository.posts[0].verse_reference = "junk"

        with patch("domain.verse_selector.tracer", provider.get_tracer("test")):
            selected = await self._selector(repository, now).select_next()

        assert selected == ref(BG, 2, 14)
        span = exporter.get_finished_spans()[0]
        assert span.name == "verse_selector.select_next"
        assert span.status.status_code != StatusCode.ERROR
        assert [event.name for event in span.events] == ["error.handled"]
