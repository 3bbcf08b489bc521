from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from crypto_news_digest.core.constants import (
    RELEVANCE_DEFAULT_SCORE,
    RELEVANCE_MAX_SCORE,
    RELEVANCE_MIN_SCORE,
    RELEVANCE_THRESHOLD,
)
from crypto_news_digest.models import NewsItem, Relevance
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
    "You are a financial news analyst who judges how relevant a news item is "
    "to the crypto market and to Federal Reserve / macroeconomic policy."
)

USER_PROMPT_TEMPLATE = """Judge whether the news below is related to the crypto market and Fed / macroeconomic policy.

Title: {title}
Summary: {description}

Consider:
1. Does it directly involve the crypto market (Bitcoin, Ethereum, ...)?
2. Does it involve Federal Reserve policy (rates, monetary policy, ...)?
3. Does it involve macroeconomic indicators (GDP, CPI, unemployment, ...)?
4. Could these factors move the crypto market?

Respond ONLY with JSON, no markdown:
{{
  "score": relevance score from 0 to 10 (10 = most relevant),
  "reason": "one short sentence in Korean",
  "relevant": true or false (true when score >= 6)
}}"""

_SCORE_RE = re.compile(r"[\"']?score[\"']?\s*[:=]\s*(-?\d+(?:\.\d+)?)", re.IGNORECASE)


def _clamp_score(score: float) -> float:
    return clamp(score, RELEVANCE_MIN_SCORE, RELEVANCE_MAX_SCORE)


def relevance_from_raw_text(raw: str) -> Relevance:
    # JSON 을 못 찾은 응답에서 score 숫자만 건져낸다 (없으면 중간값)
    match = _SCORE_RE.search(raw or "")
    score = _clamp_score(float(match.group(1))) if match else RELEVANCE_DEFAULT_SCORE
    return Relevance(
        score=score,
        reason="AI 응답 형식 오류, 기본 점수 사용",
        relevant=score >= RELEVANCE_THRESHOLD,
    )


def transport_fallback(cause: str) -> Relevance:
    # 호출 자체가 실패하면 관련 뉴스로 간주해 남긴다 (누락이 오탐보다 나쁨)
    return Relevance(
        score=RELEVANCE_DEFAULT_SCORE,
        reason=f"AI 판단 오류: {cause}",
        relevant=True,
    )


def relevance_from_result(result: OracleResult) -> Relevance:
    if isinstance(result, OracleTransportError):
        return transport_fallback(result.cause)
    if isinstance(result, OracleMalformed):
        return relevance_from_raw_text(result.raw)
    if isinstance(result, OracleOk):
        score = to_number(result.payload.get("score"))
        if score is None:
            return relevance_from_raw_text(result.raw)
        score = _clamp_score(score)
        relevant = result.payload.get("relevant")
        if not isinstance(relevant, bool):
            relevant = score >= RELEVANCE_THRESHOLD
        reason = str(result.payload.get("reason") or "").strip() or "이유 없음"
        return Relevance(score=score, reason=reason, relevant=relevant)
    raise TypeError(f"unexpected oracle result: {type(result).__name__}")


class RelevanceJudge:
    def __init__(
        self,
        *,
        oracle: Oracle,
        logger: LogFunc,
        batch_size: int = 5,
        batch_limiter: RateLimiter | None = None,
    ) -> None:
        self._oracle = oracle
        self._log = logger
        self._batch_size = max(1, batch_size)
        self._batch_limiter = batch_limiter or RateLimiter(0)

    def judge(self, item: NewsItem) -> Relevance:
        prompt = USER_PROMPT_TEMPLATE.format(
            title=item.title,
            description=item.description or "요약 없음",
        )
        try:
            result = self._oracle.complete(SYSTEM_PROMPT, prompt, temperature=0.3, max_tokens=200)
        except Exception as e:
            result = OracleTransportError(f"{type(e).__name__}: {e}")
        return relevance_from_result(result)

    def filter_by_ai(self, items: Sequence[NewsItem]) -> list[NewsItem]:
        if not items:
            return []
        total_batches = (len(items) + self._batch_size - 1) // self._batch_size
        self._log(f"AI 관련성 필터 시작: {len(items)}개 ({total_batches}개 배치)")
        kept: list[NewsItem] = []
        with ThreadPoolExecutor(max_workers=self._batch_size) as executor:
            for batch_idx, start in enumerate(range(0, len(items), self._batch_size), start=1):
                batch = items[start : start + self._batch_size]
                self._batch_limiter.wait()
                self._log(f"배치 처리 {batch_idx}/{total_batches}")
                # 실패한 future 도 자기 아이템을 그대로 들고 있도록 (item, future) 쌍으로 관리
                pending = [(item, executor.submit(self.judge, item)) for item in batch]
                for item, future in pending:
                    try:
                        verdict = future.result()
                    except Exception as e:
                        verdict = transport_fallback(f"{type(e).__name__}: {e}")
                        self._log(f"  ⚠️ 판정 실패, 기본값으로 유지: {truncate(item.title)} ({e})")
                    judged = item.with_relevance(verdict)
                    mark = "✅" if verdict.relevant else "❌"
                    self._log(f"  {mark} {truncate(judged.title)} (점수: {verdict.score:g})")
                    if verdict.relevant:
                        kept.append(judged)
        self._log(f"AI 관련성 필터 완료: {len(kept)}/{len(items)}개 유지")
        return kept
