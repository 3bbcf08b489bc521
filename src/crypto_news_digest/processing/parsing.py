from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Callable, Iterable
from urllib.parse import urljoin, urlparse

from crypto_news_digest.models import NewsItem, Origin
from crypto_news_digest.utils import clean_text, parse_datetime_utc, struct_time_to_utc


@dataclass(frozen=True)
class WebRecord:
    """웹 페이지의 뉴스 조각 하나에서 뽑아낸 원본 값."""

    title: str
    href: str
    description: str = ""
    date_text: str = ""


def _entry_get(entry: Any, key: str, default: Any = None) -> Any:
    # feedparser entry 는 dict 이자 속성 접근이 되지만, 테스트 더블은 둘 중 하나만 지원할 수 있다
    if isinstance(entry, dict):
        return entry.get(key, default)
    return getattr(entry, key, default)


def _is_absolute_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


class EntryParser:
    def __init__(
        self,
        *,
        clean_text_func: Callable[[str], str] = clean_text,
        now_provider: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._clean_text = clean_text_func
        self._now_provider = now_provider or (
            lambda: datetime.datetime.now(datetime.timezone.utc)
        )

    def _extract_content_text(self, entry: Any) -> str:
        # entry.content 의 value 들을 원본 순서대로 합친다
        content_list = _entry_get(entry, "content")
        if not isinstance(content_list, list):
            return ""
        parts: list[str] = []
        for content in content_list:
            if isinstance(content, dict):
                value = content.get("value", "") or ""
            else:
                value = getattr(content, "value", "") or ""
            if value:
                parts.append(value)
        return self._clean_text(" ".join(parts))

    def resolve_url(self, href: str, base_url: str) -> str:
        href = (href or "").strip()
        if not href:
            return ""
        if _is_absolute_url(href):
            return href
        if not base_url:
            return ""
        resolved = urljoin(base_url, href)
        return resolved if _is_absolute_url(resolved) else ""

    def parse_published(self, *candidates: Any) -> datetime.datetime:
        # 날짜는 관대하게 파싱하고, 모두 실패하면 정규화 시점의 현재 시각을 쓴다
        for value in candidates:
            if not value:
                continue
            if isinstance(value, datetime.datetime):
                if value.tzinfo is None:
                    value = value.replace(tzinfo=datetime.timezone.utc)
                return value.astimezone(datetime.timezone.utc)
            if isinstance(value, str):
                parsed = parse_datetime_utc(value)
            else:
                parsed = struct_time_to_utc(value)
            if parsed is not None:
                return parsed
        return self._now_provider()

    def parse_rss_entry(self, entry: Any, source: dict[str, Any]) -> NewsItem | None:
        title = self._clean_text(_entry_get(entry, "title", "") or "")
        base_url = source.get("url", "")
        url = self.resolve_url(_entry_get(entry, "link", "") or "", base_url)
        if not url:
            url = self.resolve_url(_entry_get(entry, "id", "") or "", base_url)
        if not title or not url:
            return None
        description = self._clean_text(_entry_get(entry, "summary", "") or "")
        if not description:
            description = self._extract_content_text(entry)
        published_at = self.parse_published(
            _entry_get(entry, "published_parsed"),
            _entry_get(entry, "updated_parsed"),
            _entry_get(entry, "published"),
            _entry_get(entry, "updated"),
        )
        return NewsItem(
            title=title,
            description=description,
            url=url,
            published_at=published_at,
            source=source.get("name", ""),
            origin=Origin.RSS,
        )

    def parse_web_record(self, record: WebRecord, source: dict[str, Any]) -> NewsItem | None:
        title = self._clean_text(record.title)
        url = self.resolve_url(record.href, source.get("url", ""))
        if not title or not url:
            return None
        return NewsItem(
            title=title,
            description=self._clean_text(record.description),
            url=url,
            published_at=self.parse_published(record.date_text),
            source=source.get("name", ""),
            origin=Origin.WEB,
        )

    def parse_many(
        self,
        raw_items: Iterable[Any],
        source: dict[str, Any],
        origin: Origin,
    ) -> list[NewsItem]:
        items: list[NewsItem] = []
        for raw in raw_items:
            if origin is Origin.WEB:
                item = self.parse_web_record(raw, source)
            else:
                item = self.parse_rss_entry(raw, source)
            if item is not None:
                items.append(item)
        return items
