from __future__ import annotations

KEYWORD_CATEGORIES: dict[str, tuple[str, ...]] = {
    "crypto": (  # 가상자산 시장 신호어
        "crypto", "cryptocurrency", "bitcoin", "btc", "ethereum", "eth",
        "blockchain", "digital currency", "stablecoin", "defi", "nft",
        "altcoin", "token", "wallet", "exchange", "mining", "hash",
        "satoshi", "hodl", "fiat", "crypto market", "digital asset",
    ),
    "fed": (  # 연준/통화정책 신호어
        "federal reserve", "fed", "fomc", "interest rate", "monetary policy",
        "powell", "inflation", "deflation", "quantitative easing", "qe",
        "tapering", "rate hike", "rate cut", "federal funds rate",
        "central bank", "jerome powell", "fed chair",
    ),
    "macro": (  # 거시경제 지표 신호어
        "gdp", "unemployment", "cpi", "ppi", "treasury", "bond yield",
        "economic growth", "recession", "stagflation", "fiscal policy",
        "government spending", "debt ceiling", "trade deficit", "surplus",
        "employment", "job market", "consumer price", "producer price",
        "economic indicator", "macroeconomic",
    ),
}
MIN_KEYWORD_CATEGORIES = 2

RELEVANCE_MIN_SCORE = 0.0
RELEVANCE_MAX_SCORE = 10.0
RELEVANCE_THRESHOLD = 6.0
RELEVANCE_DEFAULT_SCORE = 5.0

SUB_SCORE_MAX = 25.0
TOTAL_SCORE_MAX = 100.0

# (하한, 레벨) - 위에서부터 처음 만족하는 구간을 사용
IMPACT_LEVEL_BANDS = (
    (80.0, "critical"),
    (60.0, "high"),
    (40.0, "medium"),
    (20.0, "low"),
    (0.0, "negligible"),
)
IMPACT_LEVEL_EMOJI = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🟢",
    "negligible": "⚪",
}
IMPACT_LEVEL_LABELS = {
    "critical": "매우 높은 영향",
    "high": "높은 영향",
    "medium": "중간 영향",
    "low": "낮은 영향",
    "negligible": "미미한 영향",
}

DIRECTION_EMOJI = {
    "bullish": "📈",
    "bearish": "📉",
    "neutral": "➡️",
}
DIRECTION_LABELS = {
    "bullish": "호재",
    "bearish": "악재",
    "neutral": "중립",
}
DIRECTION_ALIASES = {  # 모델이 돌려주는 방향 표기를 정규화
    "bullish": "bullish",
    "positive": "bullish",
    "호재": "bullish",
    "긍정": "bullish",
    "利好": "bullish",
    "bearish": "bearish",
    "negative": "bearish",
    "악재": "bearish",
    "부정": "bearish",
    "利空": "bearish",
    "neutral": "neutral",
    "중립": "neutral",
    "中性": "neutral",
}

TELEGRAM_MAX_MESSAGE_LENGTH = 4096
TELEGRAM_MAX_CAPTION_LENGTH = 1024
SUMMARY_SEPARATOR = "\n\n" + "─" * 30 + "\n\n"

KST_LABEL = "KST"
UNKNOWN_TIME_TEXT = "시간 미상"
SUMMARY_EMPTY_TEXT = "요약 없음"
MARKET_IMPACT_EMPTY_TEXT = "영향 분석 없음"
MARKET_IMPACT_FALLBACK_TEXT = "추가 분석이 필요합니다"
MALFORMED_SUMMARY_MAX_CHARS = 200

NOTICE_NO_NEWS = "⚠️ 오늘 수집된 뉴스가 없습니다"
NOTICE_NO_KEYWORD_MATCH = "⚠️ 오늘은 관련 뉴스가 없습니다 (키워드 필터)"
NOTICE_NO_AI_MATCH = "⚠️ 오늘은 관련 뉴스가 없습니다 (AI 필터)"
NOTICE_NOTHING_NEW = "✅ 오늘은 새 뉴스가 없습니다 (모두 발송 완료)"
NOTICE_FAILURE_PREFIX = "❌ 뉴스 수집 작업 실패:"
