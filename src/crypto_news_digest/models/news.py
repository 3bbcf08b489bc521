from __future__ import annotations

import datetime
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from crypto_news_digest.utils import parse_datetime_utc


class Origin(str, Enum):
    RSS = "rss"
    WEB = "web"


class ImpactLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NEGLIGIBLE = "negligible"


class Direction(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class KeywordMatches:
    crypto: bool
    fed: bool
    macro: bool

    @property
    def count(self) -> int:
        return sum((self.crypto, self.fed, self.macro))


@dataclass(frozen=True)
class Relevance:
    score: float
    reason: str
    relevant: bool


@dataclass(frozen=True)
class ImpactScore:
    policy_strength: float
    expectation_gap: float
    time_urgency: float
    crypto_relevance: float
    total_score: float
    level: ImpactLevel
    direction: Direction
    reasoning: str


@dataclass(frozen=True)
class NewsItem:
    title: str
    description: str
    url: str
    published_at: datetime.datetime
    source: str
    origin: Origin
    keyword_matches: KeywordMatches | None = None
    relevance: Relevance | None = None
    impact: ImpactScore | None = None

    @property
    def ai_score(self) -> float | None:
        return self.relevance.score if self.relevance else None

    @property
    def ai_reason(self) -> str | None:
        return self.relevance.reason if self.relevance else None

    def with_keyword_matches(self, matches: KeywordMatches) -> NewsItem:
        return replace(self, keyword_matches=matches)

    def with_relevance(self, relevance: Relevance) -> NewsItem:
        return replace(self, relevance=relevance)

    def with_impact(self, impact: ImpactScore) -> NewsItem:
        return replace(self, impact=impact)


@dataclass(frozen=True)
class DedupRecord:
    url: str
    title: str
    sent_at: datetime.datetime

    def to_dict(self) -> dict[str, str]:
        return {
            "url": self.url,
            "title": self.title,
            "sentAt": self.sent_at.astimezone(datetime.timezone.utc).isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> DedupRecord | None:
        # url/sentAt 이 없거나 날짜가 깨진 레코드는 버린다
        if not isinstance(raw, dict):
            return None
        url = raw.get("url")
        if not isinstance(url, str) or not url:
            return None
        sent_at = parse_datetime_utc(str(raw.get("sentAt") or ""))
        if sent_at is None:
            return None
        return cls(url=url, title=str(raw.get("title") or ""), sent_at=sent_at)


@dataclass(frozen=True)
class SummaryMessage:
    item: NewsItem
    text: str
