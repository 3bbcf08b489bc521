from __future__ import annotations

import logging
import time
from typing import Sequence

import requests

from crypto_news_digest.core.config import (
    TELEGRAM_API_BASE,
    TELEGRAM_MAX_RETRIES,
    TELEGRAM_RETRY_BACKOFF_SEC,
    TELEGRAM_TIMEOUT_SEC,
)
from crypto_news_digest.core.constants import SUMMARY_SEPARATOR, TELEGRAM_MAX_MESSAGE_LENGTH
from crypto_news_digest.delivery.chunking import split_message
from crypto_news_digest.processing.rate_limit import RateLimiter
from crypto_news_digest.processing.types import SleepFunc

logger = logging.getLogger(__name__)

_PARSE_ENTITIES_ERROR = "can't parse entities"


class DeliveryError(RuntimeError):
    """메시지 전송이 최종적으로 실패한 경우."""


class TelegramClient:
    """Bot API sendMessage 를 한 번 호출한다. 실패는 DeliveryError 로 알린다."""

    def __init__(
        self,
        *,
        bot_token: str,
        chat_id: str,
        api_base: str = TELEGRAM_API_BASE,
        timeout_sec: float = TELEGRAM_TIMEOUT_SEC,
        parse_mode: str | None = "Markdown",
    ) -> None:
        self._url = f"{api_base.rstrip('/')}/bot{bot_token}/sendMessage"
        self._chat_id = chat_id
        self._timeout_sec = timeout_sec
        self._parse_mode = parse_mode

    @property
    def chat_id(self) -> str:
        return self._chat_id

    def _post(self, payload: dict[str, object]) -> requests.Response:
        try:
            return requests.post(self._url, json=payload, timeout=self._timeout_sec)
        except requests.RequestException as e:
            raise DeliveryError(f"{type(e).__name__}: {e}") from e

    def send_message(self, text: str) -> None:
        payload: dict[str, object] = {
            "chat_id": self._chat_id,
            "text": text,
            "disable_web_page_preview": False,
        }
        if self._parse_mode:
            payload["parse_mode"] = self._parse_mode
        resp = self._post(payload)
        if resp.status_code == 400 and self._parse_mode and _PARSE_ENTITIES_ERROR in resp.text.lower():
            # 제목/URL 의 '_' '*' 때문에 마크다운 해석이 실패하면 서식 없이 한 번 더 보낸다
            logger.warning("markdown rejected, resending as plain text: %s", resp.text[:200])
            payload.pop("parse_mode", None)
            resp = self._post(payload)
        if not resp.ok:
            raise DeliveryError(f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as e:
            raise DeliveryError("Telegram 응답 JSON 파싱 실패") from e
        if not isinstance(data, dict) or not data.get("ok", False):
            description = data.get("description") if isinstance(data, dict) else ""
            raise DeliveryError(f"Telegram 응답 실패: {description or data}")


class TelegramSender:
    def __init__(
        self,
        *,
        client: TelegramClient,
        max_retries: int = TELEGRAM_MAX_RETRIES,
        retry_backoff_sec: float = TELEGRAM_RETRY_BACKOFF_SEC,
        chunk_limiter: RateLimiter | None = None,
        message_limiter: RateLimiter | None = None,
        max_message_length: int = TELEGRAM_MAX_MESSAGE_LENGTH,
        sleep_func: SleepFunc = time.sleep,
    ) -> None:
        self._client = client
        self._max_retries = max(1, max_retries)
        self._retry_backoff_sec = retry_backoff_sec
        self._chunk_limiter = chunk_limiter or RateLimiter(0)
        self._message_limiter = message_limiter or RateLimiter(0)
        self._max_message_length = max_message_length
        self._sleep = sleep_func

    def send_with_retry(self, text: str) -> None:
        # 선형 백오프(1x, 2x, ...)로 재시도하고 마지막 실패는 그대로 올린다
        for attempt in range(1, self._max_retries + 1):
            try:
                self._client.send_message(text)
                return
            except DeliveryError as e:
                logger.warning("send failed (attempt %d/%d): %s", attempt, self._max_retries, e)
                if attempt >= self._max_retries:
                    raise
                self._sleep(self._retry_backoff_sec * attempt)

    def send_text(self, text: str) -> None:
        """청크로 나눠 순서대로 보낸다. 청크 하나라도 실패하면 DeliveryError."""
        self._chunk_limiter.reset()
        for chunk in split_message(text, self._max_message_length):
            self._chunk_limiter.wait()
            self.send_with_retry(chunk)

    def send_notice(self, text: str) -> bool:
        try:
            self.send_text(text)
            return True
        except Exception as e:
            logger.error("notice delivery failed: %s", e)
            return False

    def send_summaries(self, summaries: Sequence[str]) -> list[bool]:
        """요약 목록을 보내고 요약별 발송 성공 여부를 돌려준다."""
        if not summaries:
            return []

        combined = SUMMARY_SEPARATOR.join(summaries)
        if len(summaries) == 1 or len(combined) <= self._max_message_length:
            try:
                self.send_text(combined)
            except DeliveryError as e:
                logger.error("digest delivery failed: %s", e)
                return [False] * len(summaries)
            logger.info("sent %d summaries in one message", len(summaries))
            return [True] * len(summaries)

        # 합친 길이가 한도를 넘으면 요약마다 따로 보낸다 (요약 하나가 구분선을 넘나들지 않도록)
        results: list[bool] = []
        total = len(summaries)
        self._message_limiter.reset()
        for idx, summary in enumerate(summaries, start=1):
            self._message_limiter.wait()
            header = f"📊 오늘의 뉴스 ({idx}/{total})\n\n"
            try:
                self.send_text(header + summary)
                results.append(True)
            except DeliveryError as e:
                logger.error("summary %d/%d delivery failed: %s", idx, total, e)
                results.append(False)
        logger.info("sent %d/%d summaries", sum(results), total)
        return results
