from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Sequence

from crypto_news_digest.models import NewsItem
from crypto_news_digest.processing.parsing import EntryParser
from crypto_news_digest.processing.types import LogFunc
from crypto_news_digest.scrapers.rss_fetcher import fetch_rss_source
from crypto_news_digest.scrapers.web_scraper import scrape_web_source

logger = logging.getLogger(__name__)

SourceFetchFunc = Callable[..., list[NewsItem]]


class NewsCollector:
    """활성화된 RSS/웹 소스를 스레드 풀에서 동시에 수집한다.

    소스 하나가 실패해도 나머지는 계속 진행하며, 결과는 RSS 먼저
    설정 순서대로 합친다.
    """

    def __init__(
        self,
        *,
        parser: EntryParser | None = None,
        logger: LogFunc | None = None,
        max_workers: int = 8,
        rss_fetch_func: SourceFetchFunc = fetch_rss_source,
        web_fetch_func: SourceFetchFunc = scrape_web_source,
    ) -> None:
        self._parser = parser or EntryParser()
        self._log = logger or (lambda _msg: None)
        self._max_workers = max(1, max_workers)
        self._rss_fetch = rss_fetch_func
        self._web_fetch = web_fetch_func

    def _settle(self, kind: str, source: dict[str, Any], future: Future) -> list[NewsItem]:
        name = source.get("name", source.get("url", ""))
        try:
            items = future.result()
        except Exception as e:
            logger.warning("%s source failed: %s (%s)", kind, name, e)
            self._log(f"  ⚠️ {kind.upper()} 수집 실패: {name} ({type(e).__name__}: {e})")
            return []
        self._log(f"  ✅ {name}: {len(items)}개")
        return list(items)

    def collect(
        self,
        rss_sources: Sequence[dict[str, Any]],
        web_sources: Sequence[dict[str, Any]] = (),
    ) -> list[NewsItem]:
        enabled_rss = [s for s in rss_sources if s.get("enabled", False)]
        enabled_web = [s for s in web_sources if s.get("enabled", False)]
        self._log(f"뉴스 수집 시작: RSS {len(enabled_rss)}개, 웹 {len(enabled_web)}개 소스")
        if not enabled_rss and not enabled_web:
            return []

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            rss_jobs = [
                (source, executor.submit(self._rss_fetch, source, parser=self._parser))
                for source in enabled_rss
            ]
            web_jobs = [
                (source, executor.submit(self._web_fetch, source, parser=self._parser))
                for source in enabled_web
            ]
            collected: list[NewsItem] = []
            for source, future in rss_jobs:
                collected.extend(self._settle("rss", source, future))
            for source, future in web_jobs:
                collected.extend(self._settle("web", source, future))

        self._log(f"뉴스 수집 완료: 총 {len(collected)}개")
        return collected
