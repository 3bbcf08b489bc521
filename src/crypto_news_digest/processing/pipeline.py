from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from crypto_news_digest.core.config import (
    AI_FILTER_BATCH_DELAY_SEC,
    AI_FILTER_BATCH_SIZE,
    DEDUPE_RETENTION_DAYS,
    IMPACT_SCORE_DELAY_SEC,
    NEWS_SOURCES,
    OPENAI_API_BASE,
    OPENAI_MAX_RETRIES,
    OPENAI_MODEL,
    OPENAI_RETRY_BACKOFF_SEC,
    OPENAI_TIMEOUT_SEC,
    SENT_NEWS_PATH,
    SUMMARY_DELAY_SEC,
    TELEGRAM_API_BASE,
    TELEGRAM_CHUNK_DELAY_SEC,
    TELEGRAM_MAX_RETRIES,
    TELEGRAM_MESSAGE_DELAY_SEC,
    TELEGRAM_RETRY_BACKOFF_SEC,
    TELEGRAM_TIMEOUT_SEC,
    Credentials,
)
from crypto_news_digest.core.constants import (
    KEYWORD_CATEGORIES,
    MIN_KEYWORD_CATEGORIES,
    NOTICE_NO_AI_MATCH,
    NOTICE_NO_KEYWORD_MATCH,
    NOTICE_NO_NEWS,
    NOTICE_NOTHING_NEW,
)
from crypto_news_digest.delivery.telegram import DeliveryError, TelegramClient, TelegramSender
from crypto_news_digest.processing.dedupe import DedupeLedger
from crypto_news_digest.processing.keyword_filter import KeywordFilter
from crypto_news_digest.processing.llm_client import OracleClient
from crypto_news_digest.processing.parsing import EntryParser
from crypto_news_digest.processing.rate_limit import RateLimiter
from crypto_news_digest.processing.relevance import RelevanceJudge
from crypto_news_digest.processing.scoring import ImpactScorer
from crypto_news_digest.processing.summarizer import NewsSummarizer
from crypto_news_digest.processing.types import CollectFunc, LogFunc
from crypto_news_digest.scrapers.collector import NewsCollector
from crypto_news_digest.utils import clean_text

STATUS_NO_NEWS = "no_news"
STATUS_NO_KEYWORD_MATCH = "no_keyword_match"
STATUS_NO_AI_MATCH = "no_ai_match"
STATUS_NOTHING_NEW = "nothing_new"
STATUS_DELIVERED = "delivered"


@dataclass(frozen=True)
class PipelineResult:
    status: str
    fetched: int = 0
    keyword_matched: int = 0
    ai_relevant: int = 0
    scored: int = 0
    unsent: int = 0
    delivered: int = 0
    duration_sec: float = 0.0

    @property
    def short_circuited(self) -> bool:
        return self.status != STATUS_DELIVERED


class NewsPipeline:
    def __init__(
        self,
        *,
        collect_func: CollectFunc,
        keyword_filter: KeywordFilter,
        relevance_judge: RelevanceJudge,
        impact_scorer: ImpactScorer,
        ledger: DedupeLedger,
        summarizer: NewsSummarizer,
        sender: TelegramSender,
        logger: LogFunc,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._collect = collect_func
        self._keyword_filter = keyword_filter
        self._relevance_judge = relevance_judge
        self._impact_scorer = impact_scorer
        self._ledger = ledger
        self._summarizer = summarizer
        self._sender = sender
        self._log = logger
        self._clock = clock

    def _short_circuit(self, status: str, notice: str, started_at: float, **counts: int) -> PipelineResult:
        self._log(notice)
        self._sender.send_notice(notice)
        return PipelineResult(status=status, duration_sec=self._clock() - started_at, **counts)

    def run(self) -> PipelineResult:
        started_at = self._clock()
        self._log("🚀 뉴스 다이제스트 작업 시작")

        # 1. 수집
        fetched = self._collect()
        if not fetched:
            return self._short_circuit(STATUS_NO_NEWS, NOTICE_NO_NEWS, started_at)

        # 2. 키워드 사전 필터
        keyword_matched = self._keyword_filter.filter(fetched)
        if not keyword_matched:
            return self._short_circuit(
                STATUS_NO_KEYWORD_MATCH,
                NOTICE_NO_KEYWORD_MATCH,
                started_at,
                fetched=len(fetched),
            )

        # 3. AI 관련성 필터
        relevant = self._relevance_judge.filter_by_ai(keyword_matched)
        if not relevant:
            return self._short_circuit(
                STATUS_NO_AI_MATCH,
                NOTICE_NO_AI_MATCH,
                started_at,
                fetched=len(fetched),
                keyword_matched=len(keyword_matched),
            )

        # 4. 영향 점수 평가 (점수 내림차순 정렬)
        scored = self._impact_scorer.score_all(relevant)

        # 5. 발송 이력 중복 제거
        known_urls, existing_records = self._ledger.load()
        unsent = self._ledger.filter_unsent(scored, known_urls)
        if not unsent:
            return self._short_circuit(
                STATUS_NOTHING_NEW,
                NOTICE_NOTHING_NEW,
                started_at,
                fetched=len(fetched),
                keyword_matched=len(keyword_matched),
                ai_relevant=len(relevant),
                scored=len(scored),
            )

        # 6. 요약
        messages = self._summarizer.summarize_all(unsent)

        # 7. 발송
        self._log(f"📤 텔레그램 발송 시작: {len(messages)}개")
        flags = self._sender.send_summaries([m.text for m in messages])
        delivered = [m.item for m, ok in zip(messages, flags) if ok]
        if not delivered:
            raise DeliveryError(f"요약 {len(messages)}개 모두 발송 실패")
        if len(delivered) < len(messages):
            self._log(f"⚠️ 일부 발송 실패: {len(messages) - len(delivered)}개는 다음 실행에서 재시도")

        # 8. 발송 확인된 뉴스만 기록
        self._ledger.commit(delivered, existing_records)

        result = PipelineResult(
            status=STATUS_DELIVERED,
            fetched=len(fetched),
            keyword_matched=len(keyword_matched),
            ai_relevant=len(relevant),
            scored=len(scored),
            unsent=len(unsent),
            delivered=len(delivered),
            duration_sec=self._clock() - started_at,
        )
        self._log(
            "📊 처리 통계: "
            f"수집 {result.fetched} → 키워드 {result.keyword_matched} → AI {result.ai_relevant} → "
            f"점수 {result.scored} → 미발송 {result.unsent} → 발송 {result.delivered} "
            f"({result.duration_sec:.1f}초)"
        )
        return result


def build_default_oracle(*, credentials: Credentials) -> OracleClient:
    return OracleClient(
        api_key=credentials.openai_api_key,
        api_base=OPENAI_API_BASE,
        model=OPENAI_MODEL,
        timeout_sec=OPENAI_TIMEOUT_SEC,
        max_retries=OPENAI_MAX_RETRIES,
        retry_backoff_sec=OPENAI_RETRY_BACKOFF_SEC,
    )


def build_default_sender(*, credentials: Credentials) -> TelegramSender:
    client = TelegramClient(
        bot_token=credentials.telegram_bot_token,
        chat_id=credentials.telegram_chat_id,
        api_base=TELEGRAM_API_BASE,
        timeout_sec=TELEGRAM_TIMEOUT_SEC,
    )
    return TelegramSender(
        client=client,
        max_retries=TELEGRAM_MAX_RETRIES,
        retry_backoff_sec=TELEGRAM_RETRY_BACKOFF_SEC,
        chunk_limiter=RateLimiter(TELEGRAM_CHUNK_DELAY_SEC),
        message_limiter=RateLimiter(TELEGRAM_MESSAGE_DELAY_SEC),
    )


def build_default_collector(*, logger: LogFunc) -> NewsCollector:
    return NewsCollector(
        parser=EntryParser(clean_text_func=clean_text),
        logger=logger,
    )


def build_default_pipeline(
    *,
    logger: LogFunc,
    credentials: Credentials,
    sender: TelegramSender | None = None,
) -> NewsPipeline:
    oracle = build_default_oracle(credentials=credentials)
    collector = build_default_collector(logger=logger)
    rss_sources = NEWS_SOURCES.get("rss", [])
    web_sources = NEWS_SOURCES.get("web", [])
    return NewsPipeline(
        collect_func=lambda: collector.collect(rss_sources, web_sources),
        keyword_filter=KeywordFilter(
            categories=KEYWORD_CATEGORIES,
            min_categories=MIN_KEYWORD_CATEGORIES,
            logger=logger,
        ),
        relevance_judge=RelevanceJudge(
            oracle=oracle,
            logger=logger,
            batch_size=AI_FILTER_BATCH_SIZE,
            batch_limiter=RateLimiter(AI_FILTER_BATCH_DELAY_SEC),
        ),
        impact_scorer=ImpactScorer(
            oracle=oracle,
            logger=logger,
            limiter=RateLimiter(IMPACT_SCORE_DELAY_SEC),
        ),
        ledger=DedupeLedger(
            path=SENT_NEWS_PATH,
            retention_days=DEDUPE_RETENTION_DAYS,
            logger=logger,
        ),
        summarizer=NewsSummarizer(
            oracle=oracle,
            logger=logger,
            limiter=RateLimiter(SUMMARY_DELAY_SEC),
        ),
        sender=sender or build_default_sender(credentials=credentials),
        logger=logger,
    )
