from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parents[3] / ".env")


class ConfigError(RuntimeError):
    """필수 설정(자격 증명 등)이 누락된 경우."""


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except Exception:
        return default


# ==========================================
# 뉴스 소스 (enabled=False 인 소스는 수집하지 않음)
# ==========================================

NEWS_SOURCES = {
    "rss": [
        {
            "name": "Federal Reserve Press Releases",
            "url": "https://www.federalreserve.gov/feeds/press_all.xml",
            "enabled": True,
        },
        {
            "name": "CoinDesk",
            "url": "https://www.coindesk.com/arc/outboundfeeds/rss/",
            "enabled": True,
        },
        {
            "name": "Cointelegraph",
            "url": "https://cointelegraph.com/rss",
            "enabled": True,
        },
        {
            "name": "Reuters Business",
            "url": "https://www.reutersagency.com/feed/?best-topics=business-finance&post_type=best",
            "enabled": True,
        },
        {
            "name": "Bloomberg Markets",
            "url": "https://feeds.bloomberg.com/markets/news.rss",
            "enabled": True,
        },
    ],
    "web": [
        {
            "name": "Federal Reserve Speeches",
            "url": "https://www.federalreserve.gov/newsevents/speeches.htm",
            "enabled": False,
            "selector": ".eventlist-item",
        },
    ],
}

REPO_ROOT = Path(__file__).resolve().parents[3]
DATA_DIR = Path(os.getenv("DATA_DIR", str(REPO_ROOT / "data")))
SENT_NEWS_PATH = os.getenv("SENT_NEWS_PATH", str(DATA_DIR / "sent_news.json"))

# ==========================================
# 환경변수 기반 설정
# ==========================================

DEDUPE_RETENTION_DAYS = _env_int("DEDUPE_RETENTION_DAYS", 30)
MAX_ENTRIES_PER_FEED = _env_int("MAX_ENTRIES_PER_FEED", 50)
FETCH_TIMEOUT_SEC = _env_float("FETCH_TIMEOUT_SEC", 10.0)

AI_FILTER_BATCH_SIZE = _env_int("AI_FILTER_BATCH_SIZE", 5)
AI_FILTER_BATCH_DELAY_SEC = _env_float("AI_FILTER_BATCH_DELAY_SEC", 1.0)
IMPACT_SCORE_DELAY_SEC = _env_float("IMPACT_SCORE_DELAY_SEC", 0.5)
SUMMARY_DELAY_SEC = _env_float("SUMMARY_DELAY_SEC", 0.5)

OPENAI_API_BASE = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_SEC = _env_float("OPENAI_TIMEOUT_SEC", 30.0)
OPENAI_MAX_RETRIES = _env_int("OPENAI_MAX_RETRIES", 2)
OPENAI_RETRY_BACKOFF_SEC = _env_float("OPENAI_RETRY_BACKOFF_SEC", 1.5)

TELEGRAM_API_BASE = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org")
TELEGRAM_TIMEOUT_SEC = _env_float("TELEGRAM_TIMEOUT_SEC", 15.0)
TELEGRAM_MAX_RETRIES = _env_int("TELEGRAM_MAX_RETRIES", 3)
TELEGRAM_RETRY_BACKOFF_SEC = _env_float("TELEGRAM_RETRY_BACKOFF_SEC", 1.0)
TELEGRAM_CHUNK_DELAY_SEC = _env_float("TELEGRAM_CHUNK_DELAY_SEC", 0.5)
TELEGRAM_MESSAGE_DELAY_SEC = _env_float("TELEGRAM_MESSAGE_DELAY_SEC", 1.0)


@dataclass(frozen=True)
class Credentials:
    openai_api_key: str
    telegram_bot_token: str
    telegram_chat_id: str


_REQUIRED_CREDENTIALS = ("OPENAI_API_KEY", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID")


def load_credentials() -> Credentials:
    """실행에 필요한 자격 증명을 읽고, 하나라도 없으면 ConfigError."""
    values = {name: os.getenv(name, "").strip() for name in _REQUIRED_CREDENTIALS}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(f"필수 환경변수 미설정: {', '.join(missing)}")
    return Credentials(
        openai_api_key=values["OPENAI_API_KEY"],
        telegram_bot_token=values["TELEGRAM_BOT_TOKEN"],
        telegram_chat_id=values["TELEGRAM_CHAT_ID"],
    )
