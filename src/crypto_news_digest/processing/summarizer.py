from __future__ import annotations

from typing import Sequence

from crypto_news_digest.core.constants import (
    DIRECTION_LABELS,
    IMPACT_LEVEL_LABELS,
    KST_LABEL,
    MALFORMED_SUMMARY_MAX_CHARS,
    MARKET_IMPACT_EMPTY_TEXT,
    MARKET_IMPACT_FALLBACK_TEXT,
    SUMMARY_EMPTY_TEXT,
    UNKNOWN_TIME_TEXT,
)
from crypto_news_digest.models import ImpactScore, NewsItem, SummaryMessage
from crypto_news_digest.processing.rate_limit import RateLimiter
from crypto_news_digest.processing.scoring import direction_emoji, impact_emoji
from crypto_news_digest.processing.types import (
    LogFunc,
    Oracle,
    OracleMalformed,
    OracleOk,
    OracleTransportError,
)
from crypto_news_digest.utils import format_kst, truncate

SYSTEM_PROMPT = (
    "You are a financial news analyst who summarizes news and explains its effect "
    "on the crypto market. Write every output in Korean, in polite \"~입니다/~합니다\" style."
)

USER_PROMPT_TEMPLATE = """Summarize and analyse the news below. Focus on:
1. Key points (a 3-5 sentence Korean summary)
2. Potential effect on the crypto market (2-3 sentences)

Title: {title}
Summary: {description}
Published: {published}

Respond ONLY with JSON, no markdown:
{{
  "summary": "key points in Korean, 3-5 sentences",
  "marketImpact": "crypto market impact in Korean, 2-3 sentences"
}}"""


def _fmt(value: float) -> str:
    return f"{value:g}"


def render_impact_block(impact: ImpactScore) -> str:
    level_label = IMPACT_LEVEL_LABELS.get(impact.level.value, impact.level.value)
    direction_label = DIRECTION_LABELS.get(impact.direction.value, impact.direction.value)
    return (
        f"\n📊 Fed → Crypto 영향 점수: {impact_emoji(impact.total_score)} "
        f"*{_fmt(impact.total_score)}/100* ({level_label}) "
        f"{direction_emoji(impact.direction)}{direction_label}\n"
        f"   • 정책 강도: {_fmt(impact.policy_strength)}/25\n"
        f"   • 기대 괴리: {_fmt(impact.expectation_gap)}/25\n"
        f"   • 시간 긴급성: {_fmt(impact.time_urgency)}/25\n"
        f"   • 크립토 연관성: {_fmt(impact.crypto_relevance)}/25\n"
        f"   💭 {impact.reasoning}\n"
    )


def render_summary(item: NewsItem, summary: str, market_impact: str) -> str:
    published = format_kst(item.published_at)
    timestamp = f"{published} {KST_LABEL}" if published else UNKNOWN_TIME_TEXT
    impact_block = render_impact_block(item.impact) if item.impact else ""
    return (
        f"📰 {item.title}\n"
        f"⏰ {timestamp}\n"
        f"{impact_block}\n"
        f"🔍 핵심 요약:\n"
        f"{summary or SUMMARY_EMPTY_TEXT}\n\n"
        f"💡 시장 영향:\n"
        f"{market_impact or MARKET_IMPACT_EMPTY_TEXT}\n\n"
        f"🔗 원문 링크: {item.url}"
    )


def render_fallback(item: NewsItem) -> str:
    # AI 요약 실패 시 원문 설명을 그대로 쓰되 점수 블록과 링크는 유지
    return render_summary(item, item.description, MARKET_IMPACT_FALLBACK_TEXT)


class NewsSummarizer:
    def __init__(
        self,
        *,
        oracle: Oracle,
        logger: LogFunc,
        limiter: RateLimiter | None = None,
    ) -> None:
        self._oracle = oracle
        self._log = logger
        self._limiter = limiter or RateLimiter(0)

    def summarize(self, item: NewsItem) -> str:
        prompt = USER_PROMPT_TEMPLATE.format(
            title=item.title,
            description=item.description or "요약 없음",
            published=format_kst(item.published_at) or "미상",
        )
        try:
            result = self._oracle.complete(SYSTEM_PROMPT, prompt, temperature=0.5, max_tokens=500)
        except Exception as e:
            result = OracleTransportError(f"{type(e).__name__}: {e}")

        if isinstance(result, OracleOk):
            summary = str(result.payload.get("summary") or "").strip() or item.description
            market_impact = str(result.payload.get("marketImpact") or "").strip()
            return render_summary(item, summary, market_impact)
        if isinstance(result, OracleMalformed):
            raw = (result.raw or "").strip()[:MALFORMED_SUMMARY_MAX_CHARS]
            return render_summary(item, raw or item.description, MARKET_IMPACT_FALLBACK_TEXT)
        self._log(f"  ⚠️ AI 요약 실패 ({truncate(item.title)}): {result.cause}")
        return render_fallback(item)

    def summarize_all(self, items: Sequence[NewsItem]) -> list[SummaryMessage]:
        if not items:
            return []
        self._log(f"AI 요약 시작: {len(items)}개")
        messages: list[SummaryMessage] = []
        for idx, item in enumerate(items, start=1):
            self._limiter.wait()
            self._log(f"  요약 {idx}/{len(items)}: {truncate(item.title)}")
            try:
                text = self.summarize(item)
            except Exception as e:
                self._log(f"  ⚠️ 요약 실패, 기본 형식 사용: {e}")
                text = render_fallback(item)
            messages.append(SummaryMessage(item=item, text=text))
        self._log(f"AI 요약 완료: {len(messages)}개")
        return messages
