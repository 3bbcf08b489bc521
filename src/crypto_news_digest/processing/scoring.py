from __future__ import annotations

from typing import Any, Sequence

from crypto_news_digest.core.constants import (
    DIRECTION_ALIASES,
    DIRECTION_EMOJI,
    IMPACT_LEVEL_BANDS,
    IMPACT_LEVEL_EMOJI,
    SUB_SCORE_MAX,
    TOTAL_SCORE_MAX,
)
from crypto_news_digest.models import Direction, ImpactLevel, ImpactScore, NewsItem
from crypto_news_digest.processing.rate_limit import RateLimiter
from crypto_news_digest.processing.types import (
    LogFunc,
    Oracle,
    OracleMalformed,
    OracleOk,
    OracleResult,
    OracleTransportError,
)
from crypto_news_digest.utils import clamp, to_number, truncate

SYSTEM_PROMPT = (
    "You are a senior crypto market analyst and Federal Reserve policy expert. "
    "Assess how macroeconomic and Fed events affect the crypto market, objectively "
    "and based on historical market behaviour."
)

USER_PROMPT_TEMPLATE = """Assess how strongly the Fed / macroeconomic news below affects the crypto market.

Title: {title}
Summary: {description}

Dimensions:
1. policyStrength (0-25): magnitude and directness of the policy change
   - rate decisions, QE/QT size changes = high; routine speeches or data = medium; expected status quo = low
2. expectationGap (0-25): deviation from market expectations
   - surprise hawkish/dovish turn = high; in line with expectations = medium; fully priced in = low
3. timeUrgency (0-25): time horizon of the effect
   - effective immediately = high; within 1-3 months = medium; outlook beyond 6 months = low
4. cryptoRelevance (0-25): direct effect on crypto
   - mentions digital assets directly = high; liquidity / risk appetite = medium; indirect macro = low

Score bands for totalScore:
- 80-100: critical (moves of >5% likely)
- 60-79: high (3-5%)
- 40-59: medium (1-3%)
- 20-39: low (<1%)
- 0-19: negligible

Respond ONLY with JSON, no markdown:
{{
  "policyStrength": 0-25,
  "expectationGap": 0-25,
  "timeUrgency": 0-25,
  "cryptoRelevance": 0-25,
  "totalScore": 0-100,
  "direction": "bullish" | "bearish" | "neutral",
  "reasoning": "2-3 sentences in Korean"
}}"""

_DEFAULT_SUB_SCORE = 10.0
_DEFAULT_TOTAL_SCORE = 40.0


def impact_level_for(total_score: float) -> ImpactLevel:
    for lower_bound, level in IMPACT_LEVEL_BANDS:
        if total_score >= lower_bound:
            return ImpactLevel(level)
    return ImpactLevel.NEGLIGIBLE


def impact_emoji(total_score: float) -> str:
    return IMPACT_LEVEL_EMOJI[impact_level_for(total_score).value]


def normalize_direction(value: Any) -> Direction:
    key = str(value or "").strip().lower()
    return Direction(DIRECTION_ALIASES.get(key, "neutral"))


def direction_emoji(direction: Direction) -> str:
    return DIRECTION_EMOJI[direction.value]


def default_impact(reasoning: str) -> ImpactScore:
    return ImpactScore(
        policy_strength=_DEFAULT_SUB_SCORE,
        expectation_gap=_DEFAULT_SUB_SCORE,
        time_urgency=_DEFAULT_SUB_SCORE,
        crypto_relevance=_DEFAULT_SUB_SCORE,
        total_score=_DEFAULT_TOTAL_SCORE,
        level=ImpactLevel.MEDIUM,
        direction=Direction.NEUTRAL,
        reasoning=reasoning,
    )


def _clamped_field(payload: dict[str, Any], key: str, high: float) -> float:
    # 누락/비숫자는 0, 나머지는 필드별로 독립적으로 범위 안에 가둔다
    number = to_number(payload.get(key))
    if number is None:
        return 0.0
    return clamp(number, 0.0, high)


def validate_impact(payload: dict[str, Any]) -> ImpactScore:
    """모델이 보고한 점수를 검증한다. 총점은 하위 점수 합으로 다시 계산하지 않는다."""
    total = _clamped_field(payload, "totalScore", TOTAL_SCORE_MAX)
    reasoning = str(payload.get("reasoning") or "").strip() or "근거 없음"
    return ImpactScore(
        policy_strength=_clamped_field(payload, "policyStrength", SUB_SCORE_MAX),
        expectation_gap=_clamped_field(payload, "expectationGap", SUB_SCORE_MAX),
        time_urgency=_clamped_field(payload, "timeUrgency", SUB_SCORE_MAX),
        crypto_relevance=_clamped_field(payload, "cryptoRelevance", SUB_SCORE_MAX),
        total_score=total,
        level=impact_level_for(total),
        direction=normalize_direction(payload.get("direction")),
        reasoning=reasoning,
    )


def impact_from_result(result: OracleResult) -> ImpactScore:
    if isinstance(result, OracleOk):
        return validate_impact(result.payload)
    if isinstance(result, OracleMalformed):
        return default_impact("AI 평가 결과 파싱 실패, 기본값 사용")
    if isinstance(result, OracleTransportError):
        return default_impact(f"평가 오류: {result.cause}")
    raise TypeError(f"unexpected oracle result: {type(result).__name__}")


class ImpactScorer:
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

    def score(self, item: NewsItem) -> ImpactScore:
        prompt = USER_PROMPT_TEMPLATE.format(
            title=item.title,
            description=item.description or "요약 없음",
        )
        try:
            result = self._oracle.complete(SYSTEM_PROMPT, prompt, temperature=0.3, max_tokens=400)
        except Exception as e:
            result = OracleTransportError(f"{type(e).__name__}: {e}")
        if isinstance(result, OracleMalformed):
            self._log(f"  ⚠️ 점수 JSON 파싱 실패: {truncate(result.raw, 120)}")
        return impact_from_result(result)

    def score_all(self, items: Sequence[NewsItem]) -> list[NewsItem]:
        if not items:
            return []
        self._log(f"영향 점수 평가 시작: {len(items)}개")
        scored: list[NewsItem] = []
        # 프롬프트가 무거워 배치 없이 한 건씩 순차 처리
        for idx, item in enumerate(items, start=1):
            self._limiter.wait()
            self._log(f"  평가 {idx}/{len(items)}: {truncate(item.title)}")
            impact = self.score(item)
            self._log(
                f"    {impact_emoji(impact.total_score)} {impact.total_score:g}/100 "
                f"({impact.level.value}) {direction_emoji(impact.direction)}{impact.direction.value}"
            )
            scored.append(item.with_impact(impact))

        # sorted 는 안정 정렬이므로 동점은 입력 순서를 유지한다
        ranked = sorted(scored, key=lambda x: x.impact.total_score if x.impact else 0.0, reverse=True)
        self._log(
            f"영향 점수 평가 완료: 최고 {ranked[0].impact.total_score:g}, "
            f"최저 {ranked[-1].impact.total_score:g}"
        )
        return ranked
