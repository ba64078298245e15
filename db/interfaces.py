"""
Krishna108 - Database Abstraction Interfaces

Repository interfaces with read/write separation:
- IHistoryReader: the narrow read-only view the verse selector consumes
- IPostRepository: full post persistence used by the daily post pipeline

Architecture Principles:
    - Interface Segregation: the selector only ever sees IHistoryReader and
      never writes publication history
    - Dependency Inversion: the selector and pipeline depend on these
      abstractions, PostgresClient implements them

Usage:
    from db.interfaces import IHistoryReader

    class VerseSelector:
        def __init__(self, history: IHistoryReader):
            self._history = history

        async def select_next(self):
            last = await self._history.get_last_published_reference()
            ...
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Set

from data.schemas import Post, PostInput, PublicationRecord, VerseReference


class IHistoryReader(ABC):
    """
    Read-only access to publication history.

    Implementations must not swallow storage errors: failures propagate to
    the caller unchanged.
    """

    @abstractmethod
    async def get_last_published_reference(self) -> Optional[VerseReference]:
        """Reference of the most recently created post, or None if none exist."""
        ...

    @abstractmethod
    async def get_all_publications(self) -> Sequence[PublicationRecord]:
        """Every past publication, newest first."""
        ...


class IPostRepository(IHistoryReader):
    """Post persistence: history reads plus writes and lookups."""

    @abstractmethod
    async def save_post(self, post: PostInput) -> Post:
        """Insert a new post and return it with generated id and timestamps."""
        ...

    @abstractmethod
    async def get_post_by_slug(self, slug: str) -> Optional[Post]:
        ...

    @abstractmethod
    async def get_recent_posts(self, limit: int) -> List[Post]:
        ...

    @abstractmethod
    async def get_all_posts(self) -> List[Post]:
        ...

    async def get_existing_slugs(self) -> Set[str]:
        """Slugs already taken; used to keep new slugs unique."""
        return {post.slug for post in await self.get_all_posts()}
