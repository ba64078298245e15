"""
Krishna108 - Pipeline Module

Daily post workflow:
- ContentGenerator: LLM content for a verse
- content_parser: parse and validate model output
- slug_generator: unique URL slugs
- DailyPostPipeline: select, generate, validate, slug, save
"""
from pipeline.content_generator import ContentGenerator, build_prompt
from pipeline.content_parser import parse, validate, ensure_valid
from pipeline.slug_generator import generate_slug, ensure_unique
from pipeline.daily_post import DailyPostPipeline, PublishResult

__all__ = [
    "ContentGenerator",
    "build_prompt",
    "parse",
    "validate",
    "ensure_valid",
    "generate_slug",
    "ensure_unique",
    "DailyPostPipeline",
    "PublishResult",
]
