from __future__ import annotations

from typing import Mapping, Sequence

from crypto_news_digest.core.constants import KEYWORD_CATEGORIES, MIN_KEYWORD_CATEGORIES
from crypto_news_digest.models import KeywordMatches, NewsItem
from crypto_news_digest.processing.types import LogFunc


class KeywordFilter:
    """crypto / fed / macro 세 범주 중 최소 N개가 걸리는 뉴스만 남기는 사전 필터."""

    def __init__(
        self,
        *,
        categories: Mapping[str, Sequence[str]] = KEYWORD_CATEGORIES,
        min_categories: int = MIN_KEYWORD_CATEGORIES,
        logger: LogFunc | None = None,
    ) -> None:
        self._categories = {
            name: tuple(kw.lower() for kw in keywords)
            for name, keywords in categories.items()
        }
        self._min_categories = min_categories
        self._log = logger or (lambda _msg: None)

    def _contains_any(self, text_lower: str, category: str) -> bool:
        return any(kw in text_lower for kw in self._categories.get(category, ()))

    def match(self, item: NewsItem) -> KeywordMatches:
        text_lower = f"{item.title} {item.description}".lower()
        return KeywordMatches(
            crypto=self._contains_any(text_lower, "crypto"),
            fed=self._contains_any(text_lower, "fed"),
            macro=self._contains_any(text_lower, "macro"),
        )

    def filter(self, items: Sequence[NewsItem]) -> list[NewsItem]:
        self._log(f"키워드 필터 시작: {len(items)}개")
        kept: list[NewsItem] = []
        for item in items:
            matches = self.match(item)
            if matches.count >= self._min_categories:
                kept.append(item.with_keyword_matches(matches))
        self._log(f"키워드 필터 완료: {len(kept)}/{len(items)}개 유지")
        return kept
