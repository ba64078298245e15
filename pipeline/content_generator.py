"""
Krishna108 - Content Generator

Generates the devotional post for a verse through an OpenAI compatible
chat completions endpoint (Nebius AI by default) and parses the JSON reply
into GeneratedContent.

Usage:
    generator = ContentGenerator()
    content = await generator.generate_post(reference)
"""
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from config import LLMConfig, get_config
from core.errors import ConfigError, ContentGenerationError
from core.resilience import RetryConfig, RetryPolicy
from data.schemas import GeneratedContent, VerseReference
from observability.logging import get_logger
from observability.tracing import span_decorator
from pipeline.content_parser import parse


logger = get_logger("krishna108.content_generator")

SYSTEM_PROMPT = (
    "You are a devotional content writer specializing in ISKCON Vaishnava "
    "philosophy. You create engaging, authentic spiritual content for youth "
    "and devotees."
)


def build_prompt(reference: VerseReference) -> str:
    """User prompt asking for one devotional post as a JSON object."""
    return f"""You are a devotional content writer for Krishna108, creating daily posts for youth and devotees in Nepal.

Scripture Reference: {reference.label}

Create a devotional post with the following structure:

1. Title: Engaging and SEO-friendly (60 characters max)
2. Verse Excerpt: Brief quote from the verse (40 words max)
3. Simple Meaning: Clear explanation of the verse
4. Deep Reflection: Philosophical insights aligned with ISKCON teachings
5. Practical Application: How to apply this wisdom in daily life
6. Closing Inspiration: Uplifting conclusion
7. SEO Description: Meta description (160 characters max)

Tone: Peaceful, respectful, ISKCON-aligned Vaishnava philosophy
Audience: Youth and devotees in Nepal
Length: 700-900 words total (for sections 3-6 combined)
Important: Do NOT copy copyrighted purports. Create original reflections.

Return the content in the following JSON format:
{{
  "title": "...",
  "verseExcerpt": "...",
  "explanation": "...",
  "reflection": "...",
  "practicalApplication": "...",
  "closingLine": "...",
  "seoDescription": "..."
}}"""


class ContentGenerator:
    """
    LLM backed devotional content generator.

    Each call makes up to config.max_attempts attempts with a fixed
    config.retry_delay between them. Empty or unparseable replies count as
    failed attempts.
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.config = config or get_config().llm
        self._client = client
        self._retry = RetryPolicy(
            RetryConfig.fixed(
                max_attempts=self.config.max_attempts,
                delay=self.config.retry_delay,
                retryable_exceptions={OpenAIError, ContentGenerationError},
            ),
            on_retry=self._log_failed_attempt,
        )
        self._current: Optional[VerseReference] = None

    @property
    def client(self) -> AsyncOpenAI:
        """Client created on first use so construction needs no API key."""
        if self._client is None:
            if not self.config.api_key:
                raise ConfigError(
                    "NEBIUS_API_KEY environment variable is not set",
                    config_key="NEBIUS_API_KEY",
                )
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
            )
        return self._client

    def _log_failed_attempt(self, attempt: int, exc: Exception) -> None:
        logger.error(
            "Content generation attempt failed",
            attempt=attempt,
            max_attempts=self.config.max_attempts,
            reference=self._current.label if self._current else None,
            error=str(exc),
        )

    async def _attempt(self, reference: VerseReference) -> GeneratedContent:
        logger.info(
            "Generating content",
            reference=reference.label,
            model=self.config.model,
        )
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(reference)},
            ],
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            response_format={"type": "json_object"},
        )

        raw = response.choices[0].message.content if response.choices else None
        if not raw:
            raise ContentGenerationError("Model returned an empty response", model=self.config.model)

        result = parse(raw)
        if not result.success:
            raise ContentGenerationError(result.error, model=self.config.model)
        return result.content

    @span_decorator("content_generator.generate_post")
    async def generate_post(self, reference: VerseReference) -> GeneratedContent:
        """Generate content for reference; raises ContentGenerationError."""
        self._current = reference
        try:
            content = await self._retry.wrap(self._attempt)(reference)
        except (OpenAIError, ContentGenerationError) as e:
            raise ContentGenerationError(
                f"Content generation failed after {self.config.max_attempts} attempts: {getattr(e, 'message', e)}",
                model=self.config.model,
                attempts=self.config.max_attempts,
                cause=e,
            ) from e
        finally:
            self._current = None

        logger.info(
            "Generated content",
            reference=reference.label,
            word_count=content.word_count,
        )
        return content
