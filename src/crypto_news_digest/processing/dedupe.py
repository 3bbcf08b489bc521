from __future__ import annotations

import datetime
import json
import os
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

from crypto_news_digest.models import DedupRecord, NewsItem
from crypto_news_digest.processing.types import LogFunc


def _atomic_write_json(path: str, payload: dict) -> None:
    """임시 파일로 저장 후 원자적 교체."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
    except Exception:
        # 실패 시 임시 파일을 남기지 않는다
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class DedupeLedger:
    """이미 발송한 뉴스 URL 기록. 보존 기간이 지난 레코드는 로드/저장 시 모두 제거한다."""

    def __init__(
        self,
        *,
        path: str,
        retention_days: int = 30,
        logger: LogFunc | None = None,
        now_provider: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._path = path
        self._retention = datetime.timedelta(days=retention_days)
        self._log = logger or (lambda _msg: None)
        self._now_provider = now_provider or (
            lambda: datetime.datetime.now(datetime.timezone.utc)
        )

    @property
    def path(self) -> str:
        return self._path

    def _is_fresh(self, record: DedupRecord, now: datetime.datetime) -> bool:
        return now - record.sent_at < self._retention

    def _prune(self, records: Iterable[DedupRecord], now: datetime.datetime) -> list[DedupRecord]:
        return [r for r in records if self._is_fresh(r, now)]

    def _empty_document(self) -> dict[str, Any]:
        return {"records": [], "lastUpdated": self._now_provider().isoformat()}

    def load(self) -> tuple[set[str], list[DedupRecord]]:
        # 파일이 없으면 빈 장부를 만들고, 깨져 있으면 빈 장부로 시작한다 (실행은 계속)
        if not os.path.exists(self._path):
            try:
                _atomic_write_json(self._path, self._empty_document())
            except OSError as e:
                self._log(f"⚠️ 발송 기록 파일 생성 실패: {e}")
            return set(), []
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self._log(f"⚠️ 발송 기록 로드 실패, 빈 기록으로 시작: {e}")
            return set(), []

        raw_records = data.get("records") if isinstance(data, dict) else None
        if not isinstance(raw_records, list):
            self._log("⚠️ 발송 기록 형식 오류, 빈 기록으로 시작")
            return set(), []
        parsed = [DedupRecord.from_dict(raw) for raw in raw_records]
        records = self._prune((r for r in parsed if r is not None), self._now_provider())
        return {r.url for r in records}, records

    @staticmethod
    def is_sent(url: str, known_urls: set[str]) -> bool:
        return url in known_urls

    def filter_unsent(self, items: Sequence[NewsItem], known_urls: set[str]) -> list[NewsItem]:
        # 같은 실행 안에서 URL 이 겹치면 먼저 나온(상위 점수) 항목만 남긴다
        unsent: list[NewsItem] = []
        seen: set[str] = set()
        for item in items:
            if self.is_sent(item.url, known_urls) or item.url in seen:
                continue
            seen.add(item.url)
            unsent.append(item)
        self._log(f"중복 확인: {len(items)}개 중 {len(unsent)}개 미발송")
        return unsent

    def commit(
        self,
        delivered: Sequence[NewsItem],
        existing: Sequence[DedupRecord],
    ) -> list[DedupRecord]:
        """발송이 확인된 뉴스만 기록에 추가하고 저장한다. 저장 실패는 호출자에게 전파된다."""
        now = self._now_provider()
        new_records = [DedupRecord(url=item.url, title=item.title, sent_at=now) for item in delivered]
        records = self._prune([*existing, *new_records], now)
        _atomic_write_json(
            self._path,
            {
                "records": [r.to_dict() for r in records],
                "lastUpdated": now.isoformat(),
            },
        )
        self._log(f"발송 기록 저장: 신규 {len(new_records)}개, 전체 {len(records)}개")
        return records
