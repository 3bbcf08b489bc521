from __future__ import annotations

import calendar
import datetime
import email.utils
import html
import re
import time

_WS_RE = re.compile(r"\s+")  # 공백 정리 시 연속 공백을 단일 공백으로 축약
_TAG_RE = re.compile(r"<[^>]+>")  # 피드 요약에 섞인 HTML 태그 제거용
_KST = datetime.timezone(datetime.timedelta(hours=9))


def clean_text(s: str) -> str:
    """HTML 엔티티/태그를 제거하고 공백을 정리한 깔끔한 텍스트로 정규화."""
    if not s:
        return ""
    s = html.unescape(s)
    s = s.replace("\u00a0", " ")
    s = _TAG_RE.sub("", s)
    s = _WS_RE.sub(" ", s).strip()
    return s


def truncate(text: str, limit: int = 50) -> str:
    """로그 출력용으로 긴 제목을 자른다."""
    if not text or len(text) <= limit:
        return text or ""
    return text[:limit] + "..."


def parse_datetime_utc(value: str, *, default_tz: datetime.tzinfo | None = None) -> datetime.datetime | None:
    # ISO-8601 → RFC 2822 순으로 시도, 실패하면 None
    if not value:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        dt = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except Exception:
        try:
            dt = email.utils.parsedate_to_datetime(value)
        except Exception:
            return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz or datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def struct_time_to_utc(value: time.struct_time | tuple | None) -> datetime.datetime | None:
    # feedparser의 *_parsed 값은 UTC 기준 struct_time
    if not value:
        return None
    try:
        return datetime.datetime.fromtimestamp(calendar.timegm(tuple(value)[:9]), tz=datetime.timezone.utc)
    except Exception:
        return None


def format_kst(dt: datetime.datetime | None) -> str:
    if dt is None:
        return ""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(_KST).strftime("%Y-%m-%d %H:%M")


def to_number(value: object) -> float | None:
    # 모델 응답의 숫자 필드를 float 으로 변환 ("7", 7, 7.5 허용 / bool·NaN 은 거부)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
