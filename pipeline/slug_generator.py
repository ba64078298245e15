"""
Krishna108 - Slug Generator

URL-friendly slugs from post titles, made unique against existing slugs.
"""
import re
from typing import Iterable

MAX_SLUG_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")


def generate_slug(title: str) -> str:
    """
    Example:
        >>> generate_slug("Finding Peace in Krishna's Wisdom")
        'finding-peace-in-krishnas-wisdom'
        >>> generate_slug("Bhagavad Gita 2.13 - Understanding the Soul")
        'bhagavad-gita-213-understanding-the-soul'
    """
    slug = _WHITESPACE.sub("-", title.lower())
    slug = _DISALLOWED.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug)
    return slug.strip("-")[:MAX_SLUG_LENGTH]


def ensure_unique(slug: str, existing: Iterable[str]) -> str:
    """
    slug itself if unused, otherwise the first free slug-2, slug-3, ...

    The suffix counts towards the length limit; the base is trimmed to
    make room for it.
    """
    taken = set(existing)
    if slug not in taken:
        return slug

    counter = 2
    while True:
        suffix = f"-{counter}"
        candidate = f"{slug[:MAX_SLUG_LENGTH - len(suffix)]}{suffix}"
        if candidate not in taken:
            return candidate
        counter += 1
