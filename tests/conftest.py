"""
Krishna108 - Test Configuration

Pytest fixtures and configuration for all tests.
"""
import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from data.schemas import (
    GeneratedContent,
    Post,
    PostInput,
    PublicationRecord,
    ReferenceText,
    Scripture,
    VerseReference,
)
from db.interfaces import IPostRepository


FIXED_NOW = datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc)


class InMemoryPostRepository(IPostRepository):
    """IPostRepository over a list, newest post last."""

    def __init__(self, clock: Callable[[], datetime] = lambda: FIXED_NOW):
        self.posts: List[Post] = []
        self.clock = clock
        self.fail_with: Optional[Exception] = None
        self.reads = 0

    def add(
        self,
        source: Scripture,
        chapter: int,
        verse: int,
        days_ago: float = 1,
        slug: Optional[str] = None,
    ) -> Post:
        created = self.clock() - timedelta(days=days_ago)
        post = Post(
            id=str(uuid.uuid4()),
            title=f"{source.value} {chapter}.{verse}",
            slug=slug or f"post-{len(self.posts) + 1}",
            scripture_source=source.value,
            verse_reference=f"{chapter}.{verse}",
            verse_excerpt="excerpt",
            explanation="explanation",
            reflection="reflection",
            practical_application="practice",
            closing_line="closing",
            seo_description="seo",
            created_at=created,
            updated_at=created,
        )
        self.posts.append(post)
        self.posts.sort(key=lambda p: p.created_at)
        return post

    def _check(self) -> None:
        self.reads += 1
        if self.fail_with is not None:
            raise self.fail_with

    async def get_last_published_reference(self) -> Optional[VerseReference]:
        self._check()
        if not self.posts:
            return None
        newest = self.posts[-1]
        return ReferenceText.parse(newest.verse_reference).to_reference(
            Scripture.from_text(newest.scripture_source)
        )

    async def get_all_publications(self) -> List[PublicationRecord]:
        self._check()
        return [post.to_publication_record() for post in reversed(self.posts)]

    async def save_post(self, post: PostInput) -> Post:
        self._check()
        saved = Post(id=str(uuid.uuid4()), created_at=self.clock(), updated_at=self.clock(), **post.to_dict())
        self.posts.append(saved)
        return saved

    async def get_post_by_slug(self, slug: str) -> Optional[Post]:
        return next((p for p in self.posts if p.slug == slug), None)

    async def get_recent_posts(self, limit: int) -> List[Post]:
        return list(reversed(self.posts))[:limit]

    async def get_all_posts(self) -> List[Post]:
        self._check()
        return list(reversed(self.posts))


def words(count: int, word: str = "devotion") -> str:
    return " ".join([word] * count)


@pytest.fixture
def now() -> datetime:
    """Fixed clock value shared by history and selector."""
    return FIXED_NOW


@pytest.fixture
def repository() -> InMemoryPostRepository:
    """Empty in-memory post repository."""
    return InMemoryPostRepository()


@pytest.fixture
def record_factory(now) -> Callable[..., PublicationRecord]:
    """Build a PublicationRecord created `days_ago` days before now."""

    def make(
        source: Any = Scripture.BHAGAVAD_GITA,
        verse_reference: str = "2.13",
        days_ago: float = 1,
    ) -> PublicationRecord:
        value = source.value if isinstance(source, Scripture) else source
        return PublicationRecord(
            source=value,
            verse_reference=verse_reference,
            created_at=now - timedelta(days=days_ago),
        )

    return make


@pytest.fixture
def valid_content() -> GeneratedContent:
    """Content that passes every validation rule (750 body words)."""
    return GeneratedContent(
        title="Finding Peace in Krishna's Wisdom",
        verse_excerpt="The soul is never born and never dies.",
        explanation=words(250),
        reflection=words(250),
        practical_application=words(250),
        closing_line="Hare Krishna.",
        seo_description="A daily reflection on the eternal nature of the soul.",
        word_count=750,
    )


@pytest.fixture
def raw_model_output() -> Dict[str, str]:
    """Model reply keys as the prompt requests them."""
    return {
        "title": "Finding Peace in Krishna's Wisdom",
        "verseExcerpt": "The soul is never born and never dies.",
        "explanation": words(300),
        "reflection": words(250),
        "practicalApplication": words(200),
        "closingLine": "Hare Krishna.",
        "seoDescription": "A daily reflection on the eternal nature of the soul.",
    }


@pytest.fixture
def raw_model_json(raw_model_output) -> str:
    return json.dumps(raw_model_output)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "db: marks database tests")
    config.addinivalue_line("markers", "property: marks property-based tests using Hypothesis")
    config.addinivalue_line("markers", "cli: marks command line tests")
