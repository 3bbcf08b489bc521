"""Typed models for news items, scores and ledger records."""

from .news import (
    DedupRecord,
    Direction,
    ImpactLevel,
    ImpactScore,
    KeywordMatches,
    NewsItem,
    Origin,
    Relevance,
    SummaryMessage,
)

__all__ = [
    "DedupRecord",
    "Direction",
    "ImpactLevel",
    "ImpactScore",
    "KeywordMatches",
    "NewsItem",
    "Origin",
    "Relevance",
    "SummaryMessage",
]
