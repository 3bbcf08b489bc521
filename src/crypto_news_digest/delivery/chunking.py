from __future__ import annotations

from crypto_news_digest.core.constants import TELEGRAM_MAX_MESSAGE_LENGTH


def split_message(text: str, max_len: int = TELEGRAM_MAX_MESSAGE_LENGTH) -> list[str]:
    """줄 단위로 묶어 max_len 이하 조각으로 나눈다.

    한 줄이 max_len 보다 길면 그 줄만 max_len 단위로 강제로 자른다.
    빈 조각(공백만 있는 조각 포함)과 max_len 초과 조각은 만들지 않는다.
    """
    if max_len < 1:
        raise ValueError("max_len must be positive")
    if len(text) <= max_len:
        return [text] if text.strip() else []

    chunks: list[str] = []
    current: list[str] = []
    current_len = 0

    def _flush() -> None:
        nonlocal current, current_len
        if current:
            joined = "\n".join(current)
            if joined.strip():
                chunks.append(joined)
        current = []
        current_len = 0

    for line in text.split("\n"):
        added = len(line) if not current else current_len + 1 + len(line)
        if current and added <= max_len:
            current.append(line)
            current_len = added
            continue
        if not current and len(line) <= max_len:
            current = [line]
            current_len = len(line)
            continue

        _flush()
        remaining = line
        while len(remaining) > max_len:
            chunks.append(remaining[:max_len])
            remaining = remaining[max_len:]
        current = [remaining]
        current_len = len(remaining)

    _flush()
    return chunks
