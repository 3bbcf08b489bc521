from __future__ import annotations

import logging
from typing import Any, Callable

import feedparser
import requests

from crypto_news_digest.core.config import FETCH_TIMEOUT_SEC, MAX_ENTRIES_PER_FEED
from crypto_news_digest.models import NewsItem, Origin
from crypto_news_digest.processing.parsing import EntryParser

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; crypto-news-digest/0.1)",
    "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
}

FeedParseFunc = Callable[[bytes], Any]


def fetch_rss_source(
    source: dict[str, Any],
    *,
    parser: EntryParser | None = None,
    timeout: float = FETCH_TIMEOUT_SEC,
    feed_parser: FeedParseFunc = feedparser.parse,
) -> list[NewsItem]:
    """RSS/Atom 피드 하나를 받아 NewsItem 목록으로 정규화한다.

    HTTP 오류는 requests 예외로 그대로 올라간다 (수집기가 소스 단위로 처리).
    """
    parser = parser or EntryParser()
    name = source.get("name", "")
    url = source["url"]
    limit = int(source.get("limit") or MAX_ENTRIES_PER_FEED)

    resp = requests.get(url, headers=DEFAULT_HEADERS, timeout=timeout)
    resp.raise_for_status()
    feed = feed_parser(resp.content)
    if getattr(feed, "bozo", False) and not getattr(feed, "entries", None):
        logger.warning("feed parse failed: %s (%s)", name, getattr(feed, "bozo_exception", ""))
        return []

    entries = list(getattr(feed, "entries", []) or [])[:limit]
    items = parser.parse_many(entries, source, Origin.RSS)
    logger.info("rss %s: %d entries -> %d items", name, len(entries), len(items))
    return items
