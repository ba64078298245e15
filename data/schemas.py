"""
Krishna108 - Data Schemas

Normalized schemas shared by the verse selector, the content pipeline and
the persistence layer. All data crossing module boundaries should conform
to these schemas.
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Any, Optional, Tuple
from enum import Enum
from datetime import datetime, timezone
import json

from core.errors import ReferenceFormatError


# =============================================================================
# ENUMS - Standard values across the system
# =============================================================================

class Scripture(str, Enum):
    """
    The two scriptures of the canon.

    Values are the exact text stored in the posts table's scripture_source
    column.
    """
    BHAGAVAD_GITA = "Bhagavad Gita"
    SRIMAD_BHAGAVATAM = "Srimad Bhagavatam"

    @property
    def other(self) -> "Scripture":
        """The scripture the ring continues into after this one ends."""
        if self is Scripture.BHAGAVAD_GITA:
            return Scripture.SRIMAD_BHAGAVATAM
        return Scripture.BHAGAVAD_GITA

    @classmethod
    def from_text(cls, value: str) -> "Scripture":
        """Parse a stored scripture_source value."""
        try:
            return cls(value.strip())
        except ValueError:
            raise ValueError(f"Unknown scripture source: {value!r}") from None


class ErrorCode(str, Enum):
    """Machine readable codes reported by the daily post pipeline."""
    AUTH_FAILED = "AUTH_FAILED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    VERSE_SELECTION_FAILED = "VERSE_SELECTION_FAILED"
    CONTENT_GENERATION_FAILED = "CONTENT_GENERATION_FAILED"
    PARSING_FAILED = "PARSING_FAILED"
    DATABASE_ERROR = "DATABASE_ERROR"
    DUPLICATE_VERSE = "DUPLICATE_VERSE"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# =============================================================================
# VERSE REFERENCES
# =============================================================================

@dataclass(frozen=True)
class VerseReference:
    """
    One addressable verse of the canon.

    Immutable value type: two references are equal iff source, chapter and
    verse all match.

    Example:
        VerseReference(Scripture.BHAGAVAD_GITA, 2, 13)  # "Bhagavad Gita 2.13"
    """
    source: Scripture
    chapter: int
    verse: int

    def __post_init__(self) -> None:
        if not isinstance(self.source, Scripture):
            object.__setattr__(self, "source", Scripture.from_text(self.source))
        if self.chapter < 1:
            raise ValueError(f"chapter must be >= 1, got {self.chapter}")
        if self.verse < 1:
            raise ValueError(f"verse must be >= 1, got {self.verse}")

    @property
    def label(self) -> str:
        return f"{self.source.value} {self.chapter}.{self.verse}"

    def to_text(self) -> str:
        """Stored reference text, e.g. "2.13"."""
        return str(ReferenceText.from_reference(self))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "chapter": self.chapter,
            "verse": self.verse,
        }

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class ReferenceText:
    """
    The on-disk verse_reference format.

    Dot separated positive integers: the first component is always the
    chapter and the last is always the verse. Middle components (a canto,
    for instance) are kept for round-tripping but never take part in
    matching.

    Examples:
        "2.13"    -> chapter 2, verse 13
        "1.2.3"   -> chapter 1, verse 3, middle (2,)
    """
    components: Tuple[int, ...]

    SEPARATOR = "."

    def __post_init__(self) -> None:
        if len(self.components) < 2:
            raise ReferenceFormatError(
                f"Reference needs at least chapter and verse: {self.components!r}",
                text=self.SEPARATOR.join(str(c) for c in self.components),
            )
        if any(c < 1 for c in self.components):
            raise ReferenceFormatError(
                f"Reference components must be positive: {self.components!r}",
                text=self.SEPARATOR.join(str(c) for c in self.components),
            )

    @classmethod
    def parse(cls, text: str) -> "ReferenceText":
        """Parse stored reference text; raises ReferenceFormatError."""
        if not isinstance(text, str) or not text.strip():
            raise ReferenceFormatError("Empty verse reference", text=text)

        parts = text.strip().split(cls.SEPARATOR)
        if not all(part.isascii() and part.isdigit() for part in parts):
            raise ReferenceFormatError(
                f"Verse reference must be dot separated integers: {text!r}",
                text=text,
            )
        return cls(tuple(int(part) for part in parts))

    @classmethod
    def from_reference(cls, reference: VerseReference) -> "ReferenceText":
        return cls((reference.chapter, reference.verse))

    @property
    def chapter(self) -> int:
        return self.components[0]

    @property
    def verse(self) -> int:
        return self.components[-1]

    @property
    def middle(self) -> Tuple[int, ...]:
        return self.components[1:-1]

    def to_reference(self, source: Scripture) -> VerseReference:
        return VerseReference(source=source, chapter=self.chapter, verse=self.verse)

    def matches(self, reference: VerseReference) -> bool:
        """Chapter and verse agree with reference (source is not checked)."""
        return self.chapter == reference.chapter and self.verse == reference.verse

    def __str__(self) -> str:
        return self.SEPARATOR.join(str(c) for c in self.components)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class PublicationRecord:
    """
    One past publication, as read from the history store.

    The record is only ever read by the selector; the persistence layer
    owns writing it.
    """
    source: str
    verse_reference: str
    created_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", ensure_aware(self.created_at))

    def reference_text(self) -> ReferenceText:
        return ReferenceText.parse(self.verse_reference)


# =============================================================================
# CONTENT SCHEMAS
# =============================================================================

@dataclass
class BaseSchema:
    """Base schema with serialization helpers."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)


@dataclass
class GeneratedContent(BaseSchema):
    """
    Structured devotional content returned by the content generator.

    word_count covers explanation, reflection and practical_application.
    """
    title: str = ""
    verse_excerpt: str = ""
    explanation: str = ""
    reflection: str = ""
    practical_application: str = ""
    closing_line: str = ""
    seo_description: str = ""
    word_count: int = 0


@dataclass
class PostInput(BaseSchema):
    """A new post, without the fields the database generates."""
    title: str
    slug: str
    scripture_source: str
    verse_reference: str
    verse_excerpt: str
    explanation: str
    reflection: str
    practical_application: str
    closing_line: str
    seo_description: str
    featured_image_url: Optional[str] = None

    @classmethod
    def from_content(
        cls,
        content: GeneratedContent,
        reference: VerseReference,
        slug: str,
        featured_image_url: Optional[str] = None,
    ) -> "PostInput":
        return cls(
            title=content.title,
            slug=slug,
            scripture_source=reference.source.value,
            verse_reference=reference.to_text(),
            verse_excerpt=content.verse_excerpt,
            explanation=content.explanation,
            reflection=content.reflection,
            practical_application=content.practical_application,
            closing_line=content.closing_line,
            seo_description=content.seo_description,
            featured_image_url=featured_image_url,
        )


@dataclass
class Post(BaseSchema):
    """A stored devotional post."""
    id: str
    title: str
    slug: str
    scripture_source: str
    verse_reference: str
    verse_excerpt: str
    explanation: str
    reflection: str
    practical_application: str
    closing_line: str
    seo_description: str
    featured_image_url: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_publication_record(self) -> PublicationRecord:
        return PublicationRecord(
            source=self.scripture_source,
            verse_reference=self.verse_reference,
            created_at=self.created_at,
        )


@dataclass
class ValidationResult:
    """Outcome of content validation."""
    valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class ParseResult:
    """Outcome of parsing raw model output."""
    success: bool
    content: Optional[GeneratedContent] = None
    error: Optional[str] = None
