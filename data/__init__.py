"""
Krishna108 - Data Module

Schema definitions and the static structure of the canon.

Architecture:
- schemas.py: references, publication records and post content schemas
- scripture_index.py: chapter and verse counts of each scripture
"""
from data.schemas import (
    Scripture,
    ErrorCode,
    VerseReference,
    ReferenceText,
    PublicationRecord,
    GeneratedContent,
    PostInput,
    Post,
    ValidationResult,
    ParseResult,
)
from data.scripture_index import (
    ScriptureStructure,
    ScriptureIndex,
    DEFAULT_INDEX,
)

__all__ = [
    "Scripture",
    "ErrorCode",
    "VerseReference",
    "ReferenceText",
    "PublicationRecord",
    "GeneratedContent",
    "PostInput",
    "Post",
    "ValidationResult",
    "ParseResult",
    "ScriptureStructure",
    "ScriptureIndex",
    "DEFAULT_INDEX",
]
