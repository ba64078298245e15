"""
Krishna108 - Domain Layer

Verse selection: the ring walk over the canon and the recency rule.
"""
from domain.verse_selector import (
    RECENCY_WINDOW_DAYS,
    MAX_SELECTION_ATTEMPTS,
    RecencyWindow,
    VerseSelector,
    next_reference,
    was_published_recently,
)

__all__ = [
    "RECENCY_WINDOW_DAYS",
    "MAX_SELECTION_ATTEMPTS",
    "RecencyWindow",
    "VerseSelector",
    "next_reference",
    "was_published_recently",
]
