from __future__ import annotations

import logging
from typing import Any

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from crypto_news_digest.core.config import FETCH_TIMEOUT_SEC
from crypto_news_digest.models import NewsItem, Origin
from crypto_news_digest.processing.parsing import EntryParser, WebRecord

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

DEFAULT_SELECTOR = "article, .news-item, .post"
TITLE_SELECTOR = "h1, h2, h3, .title, a"
DESCRIPTION_SELECTOR = ".summary, .excerpt, p"
DATE_SELECTOR = ".date, time, .published"


def _text_of(node: Tag | None) -> str:
    if node is None:
        return ""
    return node.get_text(" ", strip=True)


def extract_records(html: str, selector: str = DEFAULT_SELECTOR) -> list[WebRecord]:
    """설정된 CSS 셀렉터로 뉴스 조각을 찾아 제목/링크/설명/날짜를 뽑는다."""
    soup = BeautifulSoup(html, "html.parser")
    records: list[WebRecord] = []
    for fragment in soup.select(selector or DEFAULT_SELECTOR):
        title = _text_of(fragment.select_one(TITLE_SELECTOR))
        link = fragment.select_one("a[href]")
        href = str(link.get("href", "")) if link is not None else ""
        date_node = fragment.select_one(DATE_SELECTOR)
        date_text = ""
        if date_node is not None:
            # <time datetime="..."> 속성이 있으면 표시 텍스트보다 우선
            date_text = str(date_node.get("datetime") or "") or _text_of(date_node)
        records.append(
            WebRecord(
                title=title,
                href=href,
                description=_text_of(fragment.select_one(DESCRIPTION_SELECTOR)),
                date_text=date_text,
            )
        )
    return records


def scrape_web_source(
    source: dict[str, Any],
    *,
    parser: EntryParser | None = None,
    timeout: float = FETCH_TIMEOUT_SEC,
) -> list[NewsItem]:
    parser = parser or EntryParser()
    name = source.get("name", "")
    resp = requests.get(source["url"], headers=BROWSER_HEADERS, timeout=timeout)
    resp.raise_for_status()

    records = extract_records(resp.text, source.get("selector") or DEFAULT_SELECTOR)
    limit = source.get("limit")
    if limit:
        records = records[: int(limit)]
    items = parser.parse_many(records, source, Origin.WEB)
    logger.info("web %s: %d fragments -> %d items", name, len(records), len(items))
    return items
