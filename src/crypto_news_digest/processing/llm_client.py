from __future__ import annotations

import ast
import json
import logging
import re
import time
from typing import Any

import requests

from crypto_news_digest.core.config import (
    OPENAI_API_BASE,
    OPENAI_MAX_RETRIES,
    OPENAI_MODEL,
    OPENAI_RETRY_BACKOFF_SEC,
    OPENAI_TIMEOUT_SEC,
)
from crypto_news_digest.processing.types import (
    OracleMalformed,
    OracleOk,
    OracleResult,
    OracleTransportError,
    SleepFunc,
)

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def _try_load_json(payload: str) -> dict[str, Any] | None:
    try:
        obj = json.loads(payload)
        return obj if isinstance(obj, dict) else None
    except Exception:
        return None


def _strip_trailing_commas(payload: str) -> str:
    return re.sub(r",\s*([}\]])", r"\1", payload)


def extract_json_block(payload: str) -> str | None:
    # 첫 번째 '{' 부터 괄호 균형이 맞는 지점까지 잘라낸다 (문자열 안의 괄호는 무시)
    start = payload.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(payload)):
        ch = payload[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return payload[start : i + 1]
    return None


def parse_json(text: str) -> dict[str, Any] | None:
    # 문자열에서 JSON 객체를 파싱(직접 파싱 실패 시 중괄호 블록 탐색)
    if not text:
        return None
    raw = text.strip()
    raw = re.sub(r"```(?:json)?", "", raw, flags=re.IGNORECASE).replace("```", "").strip()

    parsed = _try_load_json(raw)
    if parsed is not None:
        return parsed

    candidate = extract_json_block(raw)
    if not candidate:
        return None
    parsed = _try_load_json(candidate)
    if parsed is not None:
        return parsed
    cleaned = _strip_trailing_commas(candidate)
    parsed = _try_load_json(cleaned)
    if parsed is not None:
        return parsed
    try:
        obj = ast.literal_eval(cleaned)
        return obj if isinstance(obj, dict) else None
    except Exception:
        return None


def _extract_message_text(payload: dict[str, Any]) -> str:
    # chat/completions 응답에서 텍스트만 추출
    try:
        return (payload["choices"][0]["message"]["content"] or "").strip()
    except Exception:
        return ""


class OracleClient:
    """OpenAI 호환 chat/completions 엔드포인트를 감싸는 판정 클라이언트.

    호출 결과는 예외 대신 OracleResult 로 돌려준다:
    - OracleOk: 응답에서 JSON 객체를 찾은 경우
    - OracleMalformed: 응답은 받았지만 JSON 을 찾지 못한 경우
    - OracleTransportError: 네트워크/인증/한도 초과 등으로 응답 자체가 없는 경우
    """

    def __init__(
        self,
        *,
        api_key: str,
        api_base: str = OPENAI_API_BASE,
        model: str = OPENAI_MODEL,
        timeout_sec: float = OPENAI_TIMEOUT_SEC,
        max_retries: int = OPENAI_MAX_RETRIES,
        retry_backoff_sec: float = OPENAI_RETRY_BACKOFF_SEC,
        sleep_func: SleepFunc = time.sleep,
    ) -> None:
        self._api_key = api_key
        self._url = f"{api_base.rstrip('/')}/chat/completions"
        self._model = model
        self._timeout_sec = timeout_sec
        self._max_retries = max_retries
        self._retry_backoff_sec = retry_backoff_sec
        self._sleep = sleep_func

    def _backoff(self, attempt: int) -> None:
        self._sleep(self._retry_backoff_sec * (2 ** (attempt - 1)))

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 400,
    ) -> OracleResult:
        request_payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        max_attempts = max(1, self._max_retries + 1)
        last_err = ""
        for attempt in range(1, max_attempts + 1):
            try:
                resp = requests.post(
                    self._url,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json=request_payload,
                    timeout=self._timeout_sec,
                )
            except requests.RequestException as e:
                last_err = f"{type(e).__name__}: {e}"
                if attempt < max_attempts:
                    self._backoff(attempt)
                    continue
                logger.warning("oracle call failed: %s", last_err)
                return OracleTransportError(last_err)

            if not resp.ok:
                last_err = f"HTTP {resp.status_code}: {resp.text[:200]}"
                if resp.status_code in _RETRYABLE_STATUS and attempt < max_attempts:
                    self._backoff(attempt)
                    continue
                logger.warning("oracle call failed: %s", last_err)
                return OracleTransportError(last_err)

            try:
                data = resp.json()
            except ValueError:
                return OracleMalformed(resp.text or "")

            text = _extract_message_text(data if isinstance(data, dict) else {})
            parsed = parse_json(text)
            if parsed is None:
                snippet = re.sub(r"\s+", " ", text)[:160]
                logger.info("oracle response is not JSON: %s", snippet)
                return OracleMalformed(text)
            return OracleOk(payload=parsed, raw=text)

        return OracleTransportError(last_err or "unknown error")
