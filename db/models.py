"""
Krishna108 - SQLAlchemy ORM Models

The posts table: one row per published devotional, which doubles as the
publication history the verse selector reads.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func, text

from data.schemas import Post as PostSchema


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Post(Base):
    """Published devotional post."""
    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    title: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(100), unique=True)
    scripture_source: Mapped[str] = mapped_column(String(50))  # "Bhagavad Gita", "Srimad Bhagavatam"
    verse_reference: Mapped[str] = mapped_column(String(20))  # "2.13"
    verse_excerpt: Mapped[str] = mapped_column(Text)
    explanation: Mapped[str] = mapped_column(Text)
    reflection: Mapped[str] = mapped_column(Text)
    practical_application: Mapped[str] = mapped_column(Text)
    closing_line: Mapped[str] = mapped_column(Text)
    seo_description: Mapped[str] = mapped_column(String(160))
    featured_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("idx_posts_slug", "slug"),
        Index("idx_posts_verse_reference", "verse_reference"),
    )

    def to_schema(self) -> PostSchema:
        return PostSchema(
            id=str(self.id),
            title=self.title,
            slug=self.slug,
            scripture_source=self.scripture_source,
            verse_reference=self.verse_reference,
            verse_excerpt=self.verse_excerpt,
            explanation=self.explanation,
            reflection=self.reflection,
            practical_application=self.practical_application,
            closing_line=self.closing_line,
            seo_description=self.seo_description,
            featured_image_url=self.featured_image_url,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Post {self.slug} ({self.scripture_source} {self.verse_reference})>"


Index("idx_posts_created_at", Post.created_at.desc())
