from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Union

from crypto_news_digest.models import NewsItem


@dataclass(frozen=True)
class OracleOk:
    payload: dict[str, Any]
    raw: str


@dataclass(frozen=True)
class OracleMalformed:
    raw: str


@dataclass(frozen=True)
class OracleTransportError:
    cause: str


OracleResult = Union[OracleOk, OracleMalformed, OracleTransportError]

LogFunc = Callable[[str], None]
SleepFunc = Callable[[float], None]
CollectFunc = Callable[[], list[NewsItem]]


class Oracle(Protocol):
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = ...,
        max_tokens: int = ...,
    ) -> OracleResult: ...
