"""
Krishna108 - Daily Post Pipeline

One run publishes one devotional post:

    select verse -> generate content -> validate -> slug -> save

Every step failure is raised as PipelineStepError carrying the ErrorCode of
the failed step; the original exception is chained. Runs against the same
pipeline instance never overlap: a second concurrent run is rejected with
ConcurrentRunError.
"""
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional

from config import SelectionConfig, get_config
from core.errors import ContentValidationError, PipelineStepError
from core.resilience import SingleFlight
from data.schemas import ErrorCode, GeneratedContent, PostInput, VerseReference
from db.interfaces import IPostRepository
from domain.verse_selector import VerseSelector
from observability.logging import LogContext, PipelineLogger
from observability.tracing import create_span
from pipeline.content_generator import ContentGenerator
from pipeline.content_parser import ensure_valid
from pipeline.slug_generator import ensure_unique, generate_slug


SUCCESS_MESSAGE = "Post generated and published successfully"
DRY_RUN_MESSAGE = "Dry run completed, nothing was saved"


@dataclass
class PublishResult:
    """Outcome of a successful pipeline run."""
    reference: VerseReference
    slug: str
    duration_seconds: float
    message: str = SUCCESS_MESSAGE
    post_id: Optional[str] = None
    dry_run: bool = False
    content: Optional[GeneratedContent] = field(default=None, repr=False)

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "post_id": self.post_id,
            "slug": self.slug,
            "verse_reference": self.reference.label,
            "duration_seconds": round(self.duration_seconds, 3),
            "dry_run": self.dry_run,
        }


class DailyPostPipeline:
    """
    Orchestrates one daily publication.

    Usage:
        pipeline = DailyPostPipeline(repository=await get_db_client())
        result = await pipeline.run()
    """

    def __init__(
        self,
        repository: IPostRepository,
        generator: Optional[ContentGenerator] = None,
        selector: Optional[VerseSelector] = None,
        selection: Optional[SelectionConfig] = None,
    ):
        self.repository = repository
        self.generator = generator or ContentGenerator()
        if selector is None:
            selection = selection or get_config().selection
            selector = VerseSelector(
                history=repository,
                window_days=selection.recency_window_days,
                max_attempts=selection.max_attempts,
            )
        self.selector = selector
        self.gate = SingleFlight("daily_post")
        self.log = PipelineLogger()

    @asynccontextmanager
    async def _step(self, step: str, code: ErrorCode, message: str) -> AsyncIterator[None]:
        try:
            yield
        except PipelineStepError:
            raise
        except ContentValidationError as e:
            details = ", ".join(e.errors)
            self.log.step_failed(step, code.value, details)
            raise PipelineStepError(message, code=code.value, step=step, details=details, cause=e) from e
        except Exception as e:
            self.log.step_failed(step, code.value, str(e))
            raise PipelineStepError(message, code=code.value, step=step, details=str(e), cause=e) from e

    async def run(self, dry_run: bool = False) -> PublishResult:
        """
        Execute one run.

        With dry_run the post is generated, validated and given a slug but
        not saved.
        """
        async with self.gate:
            with LogContext(run_id=uuid.uuid4().hex[:12]):
                with create_span("daily_post.run", attributes={"pipeline.dry_run": dry_run}) as span:
                    start = time.monotonic()
                    self.log.start_run(dry_run)

                    async with self._step("select", ErrorCode.VERSE_SELECTION_FAILED, "Failed to select verse"):
                        reference = await self.selector.select_next()
                    self.log.step("select", reference=reference.label)
                    span.set_attribute("pipeline.reference", reference.label)

                    async with self._step("generate", ErrorCode.CONTENT_GENERATION_FAILED, "Failed to generate content"):
                        content = await self.generator.generate_post(reference)
                    self.log.step("generate", word_count=content.word_count)

                    async with self._step("validate", ErrorCode.VALIDATION_ERROR, "Content validation failed"):
                        ensure_valid(content)
                    self.log.step("validate")

                    async with self._step("slug", ErrorCode.DATABASE_ERROR, "Failed to generate unique slug"):
                        slug = ensure_unique(
                            generate_slug(content.title),
                            await self.repository.get_existing_slugs(),
                        )
                    self.log.step("slug", slug=slug)
                    span.set_attribute("pipeline.slug", slug)

                    if dry_run:
                        duration = time.monotonic() - start
                        self.log.end_run(reference.label, duration, slug=slug)
                        return PublishResult(
                            reference=reference,
                            slug=slug,
                            duration_seconds=duration,
                            message=DRY_RUN_MESSAGE,
                            dry_run=True,
                            content=content,
                        )

                    async with self._step("save", ErrorCode.DATABASE_ERROR, "Failed to save post"):
                        post = await self.repository.save_post(
                            PostInput.from_content(content, reference, slug)
                        )
                    span.set_attribute("pipeline.post_id", post.id)

                    duration = time.monotonic() - start
                    self.log.end_run(reference.label, duration, post_id=post.id, slug=post.slug)
                    return PublishResult(
                        reference=reference,
                        slug=post.slug,
                        duration_seconds=duration,
                        post_id=post.id,
                        content=content,
                    )
