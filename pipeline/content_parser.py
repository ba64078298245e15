"""
Krishna108 - Content Parser

Turns raw model output into GeneratedContent and checks it against the
publishing constraints (required fields, title/excerpt/SEO lengths and the
700-900 word body).
"""
import json
from typing import Any, Dict, List

from core.errors import ContentValidationError
from data.schemas import GeneratedContent, ParseResult, ValidationResult


TITLE_MAX_CHARS = 100
EXCERPT_MAX_WORDS = 40
SEO_MAX_CHARS = 160
MIN_WORDS = 700
MAX_WORDS = 900

# model JSON key -> GeneratedContent attribute
FIELD_MAP = {
    "title": "title",
    "verseExcerpt": "verse_excerpt",
    "explanation": "explanation",
    "reflection": "reflection",
    "practicalApplication": "practical_application",
    "closingLine": "closing_line",
    "seoDescription": "seo_description",
}


def count_words(*texts: str) -> int:
    return len(" ".join(texts).split())


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def parse(raw_content: str) -> ParseResult:
    """
    Parse a JSON object into GeneratedContent.

    Missing keys become empty strings. Never raises: any failure is reported
    as an unsuccessful ParseResult.
    """
    try:
        data = json.loads(raw_content)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    except (TypeError, ValueError) as e:
        return ParseResult(success=False, error=f"Failed to parse content: {e}")

    fields = {attr: _text(data, key) for key, attr in FIELD_MAP.items()}
    fields["word_count"] = count_words(
        fields["explanation"],
        fields["reflection"],
        fields["practical_application"],
    )
    return ParseResult(success=True, content=GeneratedContent(**fields))


def validate(content: GeneratedContent) -> ValidationResult:
    """Check required fields and length limits; collects every failure."""
    errors: List[str] = []

    required = [
        (content.title, "Title is required"),
        (content.verse_excerpt, "Verse excerpt is required"),
        (content.explanation, "Explanation is required"),
        (content.reflection, "Reflection is required"),
        (content.practical_application, "Practical application is required"),
        (content.closing_line, "Closing line is required"),
        (content.seo_description, "SEO description is required"),
    ]
    for value, message in required:
        if not value or not value.strip():
            errors.append(message)

    if content.title and len(content.title) > TITLE_MAX_CHARS:
        errors.append(f"Title must be between 1 and {TITLE_MAX_CHARS} characters")

    if content.verse_excerpt:
        excerpt_words = count_words(content.verse_excerpt)
        if excerpt_words < 1 or excerpt_words > EXCERPT_MAX_WORDS:
            errors.append(f"Verse excerpt must be between 1 and {EXCERPT_MAX_WORDS} words")

    if content.seo_description and len(content.seo_description) > SEO_MAX_CHARS:
        errors.append(f"SEO description must be between 1 and {SEO_MAX_CHARS} characters")

    if content.word_count < MIN_WORDS or content.word_count > MAX_WORDS:
        errors.append(
            f"Total word count must be between {MIN_WORDS} and {MAX_WORDS} words "
            f"(current: {content.word_count})"
        )

    return ValidationResult(valid=not errors, errors=errors)


def ensure_valid(content: GeneratedContent) -> GeneratedContent:
    """Return content unchanged, or raise ContentValidationError."""
    result = validate(content)
    if not result.valid:
        raise ContentValidationError(
            f"Content validation failed: {', '.join(result.errors)}",
            errors=result.errors,
        )
    return content
