"""
Krishna108 - Verse Selection

Decides which scripture reference is published next.

The canon is a ring: within a chapter verses increase, chapters follow in
order, the last verse of the Bhagavad Gita is followed by Srimad Bhagavatam
1.1 and the last verse of Srimad Bhagavatam wraps back to Bhagavad Gita
1.1. Selection walks the ring from the last published reference and skips
every reference already published inside the trailing recency window.

Components:
    next_reference          successor of a reference in ring order
    was_published_recently  recency check against publication history
    RecencyWindow           the same check, precomputed once per selection
    VerseSelector           entry point composing the above with history

Selection is deterministic: identical history and clock always yield the
same reference. It assumes at most one concurrent selection per history
store; callers enforce that (see pipeline.daily_post).
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, FrozenSet, Iterable, Optional

from opentelemetry import trace

from core.errors import ExhaustedCanonError, ReferenceFormatError
from data.schemas import PublicationRecord, Scripture, VerseReference, ensure_aware
from data.scripture_index import DEFAULT_INDEX, ScriptureIndex
from db.interfaces import IHistoryReader
from observability.logging import get_logger


# A reference may not repeat within this many days.
RECENCY_WINDOW_DAYS = 365

# Upper bound on ring steps while skipping recent references. Far larger
# than either scripture, so it only trips on a broken index or a canon
# smaller than the window demands.
MAX_SELECTION_ATTEMPTS = 1000

logger = get_logger("krishna108.selector")
tracer = trace.get_tracer(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# SEQUENCER
# =============================================================================

def next_reference(
    current: VerseReference,
    index: ScriptureIndex = DEFAULT_INDEX,
) -> VerseReference:
    """
    Successor of current in ring order.

    Raises OutOfRangeError if current names a chapter the index does not
    define.
    """
    source = current.source

    if current.verse < index.verses_in_chapter(source, current.chapter):
        return VerseReference(source, current.chapter, current.verse + 1)

    if current.chapter < index.chapter_count(source):
        return VerseReference(source, current.chapter + 1, 1)

    return VerseReference(source.other, 1, 1)


# =============================================================================
# RECENCY FILTER
# =============================================================================

def _record_reference(record: PublicationRecord) -> Optional[VerseReference]:
    """Reference a history record points at, or None if it cannot be read."""
    try:
        source = Scripture.from_text(record.source)
        return record.reference_text().to_reference(source)
    except (ValueError, ReferenceFormatError) as e:
        logger.warning(
            "Skipping unreadable publication record",
            source=record.source,
            verse_reference=record.verse_reference,
            error=str(e),
        )
        return None


def recency_cutoff(days: int, now: datetime) -> datetime:
    """Oldest creation time that still counts as recent (inclusive)."""
    return ensure_aware(now) - timedelta(days=days)


def was_published_recently(
    candidate: VerseReference,
    days: int,
    history: Iterable[PublicationRecord],
    now: Optional[datetime] = None,
) -> bool:
    """
    Whether candidate was published within the last `days` days.

    A record counts when its source and chapter/verse equal the candidate's
    and it is not older than `days` days before now. A record exactly
    `days` days old still counts.
    """
    cutoff = recency_cutoff(days, now or utc_now())

    for record in history:
        if record.created_at < cutoff:
            continue
        if _record_reference(record) == candidate:
            return True
    return False


class RecencyWindow:
    """
    References published inside the trailing window, computed once.

    Equivalent to calling was_published_recently for every candidate with
    the same history, days and now, without rescanning history per
    candidate.
    """

    def __init__(
        self,
        history: Iterable[PublicationRecord],
        days: int = RECENCY_WINDOW_DAYS,
        now: Optional[datetime] = None,
    ):
        self.days = days
        self.now = ensure_aware(now or utc_now())
        self.cutoff = recency_cutoff(days, self.now)
        self._recent: FrozenSet[VerseReference] = frozenset(
            reference
            for reference in (
                _record_reference(record)
                for record in history
                if record.created_at >= self.cutoff
            )
            if reference is not None
        )

    def __contains__(self, reference: VerseReference) -> bool:
        return reference in self._recent

    def __len__(self) -> int:
        return len(self._recent)


# =============================================================================
# SELECTOR
# =============================================================================

class VerseSelector:
    """
    Produces the next reference to publish.

    The result is the earliest ring successor of the last published
    reference that has not been used inside the recency window. With no
    history at all the ring start (Bhagavad Gita 1.1) is returned.

    Usage:
        selector = VerseSelector(history=postgres_client)
        reference = await selector.select_next()
    """

    def __init__(
        self,
        history: IHistoryReader,
        index: ScriptureIndex = DEFAULT_INDEX,
        window_days: int = RECENCY_WINDOW_DAYS,
        max_attempts: int = MAX_SELECTION_ATTEMPTS,
        clock: Clock = utc_now,
    ):
        self.history = history
        self.index = index
        self.window_days = window_days
        self.max_attempts = max_attempts
        self.clock = clock

    async def select_next(self) -> VerseReference:
        """
        Next reference to publish.

        Raises ExhaustedCanonError when more than max_attempts ring steps
        would be needed. Errors from the history reader propagate unchanged.
        """
        with tracer.start_as_current_span("verse_selector.select_next") as span:
            last = await self.history.get_last_published_reference()

            if last is None:
                start = self.index.first_reference()
                logger.info("No publication history, starting at ring start", reference=start.label)
                span.set_attribute("selection.reference", start.label)
                return start

            candidate = next_reference(last, self.index)
            history = await self.history.get_all_publications()
            window = RecencyWindow(history, days=self.window_days, now=self.clock())

            attempts = 0
            while candidate in window:
                if attempts >= self.max_attempts:
                    raise ExhaustedCanonError(
                        f"No reference outside the last {self.window_days} days "
                        f"within {self.max_attempts} steps of {last.label}",
                        attempts=attempts,
                        window_days=self.window_days,
                    )
                logger.debug("Skipping recently published reference", reference=candidate.label)
                candidate = next_reference(candidate, self.index)
                attempts += 1

            span.set_attribute("selection.last", last.label)
            span.set_attribute("selection.reference", candidate.label)
            span.set_attribute("selection.skipped", attempts)
            logger.info(
                "Selected next reference",
                last=last.label,
                reference=candidate.label,
                skipped=attempts,
                recent_count=len(window),
            )
            return candidate

    async def is_recent(self, reference: VerseReference) -> bool:
        """Recency check for a single reference against the full history."""
        history = await self.history.get_all_publications()
        return was_published_recently(reference, self.window_days, history, now=self.clock())
