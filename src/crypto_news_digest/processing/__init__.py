"""Filtering, scoring, deduplication and summarization stages."""

__all__ = [
    "dedupe",
    "keyword_filter",
    "llm_client",
    "parsing",
    "pipeline",
    "rate_limit",
    "relevance",
    "scoring",
    "summarizer",
    "types",
]
