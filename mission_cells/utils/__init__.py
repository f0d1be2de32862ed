# Utility modules
from .datetime_utils import (
    compressed_at,
    compressed_tag,
    format_datetime,
    is_fresh_compressed,
    now_utc,
    parse_datetime,
    split_compressed_tag,
    tag_fact,
)
from .llm import CompletionClient, LLMProvider, MockProvider, OpenAIProvider, get_llm_provider
from .text import dedupe_facts, first_number, is_meta, levenshtein, split_lines, truncate

__all__ = [
    "LLMProvider",
    "OpenAIProvider",
    "MockProvider",
    "CompletionClient",
    "get_llm_provider",
    "now_utc",
    "parse_datetime",
    "format_datetime",
    "compressed_tag",
    "compressed_at",
    "is_fresh_compressed",
    "split_compressed_tag",
    "tag_fact",
    "dedupe_facts",
    "first_number",
    "is_meta",
    "levenshtein",
    "split_lines",
    "truncate",
]
