from __future__ import annotations

import threading
import time
from typing import Callable

from crypto_news_digest.processing.types import SleepFunc


class RateLimiter:
    """호출 사이에 최소 간격을 보장하는 리미터.

    첫 호출은 바로 통과하고, 이후 호출은 직전 통과 시점으로부터
    min_interval_sec 가 지날 때까지 기다린다. 여러 스레드가 공유해도 된다.
    """

    def __init__(
        self,
        min_interval_sec: float,
        *,
        sleep_func: SleepFunc = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval_sec = max(0.0, float(min_interval_sec))
        self._sleep = sleep_func
        self._clock = clock
        self._lock = threading.Lock()
        self._last_at: float | None = None

    @property
    def min_interval_sec(self) -> float:
        return self._min_interval_sec

    def wait(self) -> float:
        """필요한 만큼 대기한 뒤 실제로 기다린 시간(초)을 돌려준다."""
        with self._lock:
            waited = 0.0
            if self._last_at is not None and self._min_interval_sec > 0:
                remaining = self._min_interval_sec - (self._clock() - self._last_at)
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
            self._last_at = self._clock()
            return waited

    def reset(self) -> None:
        with self._lock:
            self._last_at = None
