from __future__ import annotations

import datetime
import json

import pytest

from crypto_news_digest.core.constants import (
    NOTICE_NO_AI_MATCH,
    NOTICE_NO_KEYWORD_MATCH,
    NOTICE_NO_NEWS,
    NOTICE_NOTHING_NEW,
)
from crypto_news_digest.delivery.telegram import DeliveryError
from crypto_news_digest.models import NewsItem, Origin
from crypto_news_digest.processing import relevance, scoring, summarizer
from crypto_news_digest.processing.dedupe import DedupeLedger
from crypto_news_digest.processing.keyword_filter import KeywordFilter
from crypto_news_digest.processing.pipeline import NewsPipeline, PipelineResult
from crypto_news_digest.processing.relevance import RelevanceJudge
from crypto_news_digest.processing.scoring import ImpactScorer
from crypto_news_digest.processing.summarizer import NewsSummarizer
from crypto_news_digest.processing.types import OracleOk

NOW = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)


class _RoutingOracle:
    """단계별 시스템 프롬프트를 보고 제목에 맞는 응답을 돌려준다."""

    def __init__(self, impact_scores: dict[str, float], relevant_titles: set[str] | None = None) -> None:
        self._impact_scores = impact_scores
        self._relevant_titles = relevant_titles
        self.calls: list[str] = []

    def _title_of(self, user_prompt: str) -> str:
        for line in user_prompt.splitlines():
            if line.startswith("Title: "):
                return line[len("Title: ") :]
        raise AssertionError("prompt without title")

    def complete(self, system_prompt: str, user_prompt: str, *, temperature: float = 0.3, max_tokens: int = 400):
        title = self._title_of(user_prompt)
        if system_prompt == relevance.SYSTEM_PROMPT:
            self.calls.append(f"relevance:{title}")
            is_relevant = self._relevant_titles is None or title in self._relevant_titles
            payload = {"score": 8 if is_relevant else 2, "reason": "판정", "relevant": is_relevant}
        elif system_prompt == scoring.SYSTEM_PROMPT:
            self.calls.append(f"impact:{title}")
            payload = {
                "policyStrength": 10,
                "expectationGap": 10,
                "timeUrgency": 10,
                "cryptoRelevance": 10,
                "totalScore": self._impact_scores[title],
                "direction": "bullish",
                "reasoning": "근거",
            }
        elif system_prompt == summarizer.SYSTEM_PROMPT:
            self.calls.append(f"summary:{title}")
            payload = {"summary": f"{title} 요약", "marketImpact": f"{title} 영향"}
        else:
            raise AssertionError("unknown stage")
        return OracleOk(payload=payload, raw=json.dumps(payload, ensure_ascii=False))


class _FakeSender:
    def __init__(self, fail_markers: tuple[str, ...] = ()) -> None:
        self.summaries: list[list[str]] = []
        self.notices: list[str] = []
        self._fail_markers = fail_markers

    def send_summaries(self, texts: list[str]) -> list[bool]:
        self.summaries.append(list(texts))
        return [not any(marker in text for marker in self._fail_markers) for text in texts]

    def send_notice(self, text: str) -> bool:
        self.notices.append(text)
        return True


def _item(slug: str, title: str) -> NewsItem:
    return NewsItem(
        title=title,
        description="",
        url=f"https://news.example.com/{slug}",
        published_at=NOW,
        source="Example",
        origin=Origin.RSS,
    )


ITEMS = [
    _item("alpha", "Alpha: Bitcoin jumps as Fed signals cut"),
    _item("bravo", "Bravo: Bitcoin flat after Fed minutes"),
    _item("charlie", "Charlie: Fed hike fears hit bitcoin"),
    _item("delta", "Delta: local bakery opens new shop"),
]
SCORES = {ITEMS[0].title: 85, ITEMS[1].title: 30, ITEMS[2].title: 55}
FILLERS = [_item(f"garden-{i}", f"Garden show draws crowds, day {i}") for i in range(6)]


def _pipeline(
    tmp_path,
    *,
    items: list[NewsItem],
    oracle: _RoutingOracle,
    sender: _FakeSender,
) -> NewsPipeline:
    log = lambda _msg: None  # noqa: E731
    return NewsPipeline(
        collect_func=lambda: list(items),
        keyword_filter=KeywordFilter(logger=log),
        relevance_judge=RelevanceJudge(oracle=oracle, logger=log, batch_size=2),
        impact_scorer=ImpactScorer(oracle=oracle, logger=log),
        ledger=DedupeLedger(path=str(tmp_path / "sent_news.json"), now_provider=lambda: NOW, logger=log),
        summarizer=NewsSummarizer(oracle=oracle, logger=log),
        sender=sender,  # type: ignore[arg-type]
        logger=log,
    )


def _ledger_urls(tmp_path) -> list[str]:
    data = json.loads((tmp_path / "sent_news.json").read_text(encoding="utf-8"))
    return [r["url"] for r in data["records"]]


def test_end_to_end_ranks_delivers_and_commits(tmp_path) -> None:
    oracle = _RoutingOracle(SCORES)
    sender = _FakeSender()

    result = _pipeline(tmp_path, items=ITEMS + FILLERS, oracle=oracle, sender=sender).run()

    assert result.status == "delivered"
    assert (result.fetched, result.keyword_matched, result.ai_relevant) == (10, 3, 3)
    assert (result.scored, result.unsent, result.delivered) == (3, 3, 3)
    assert len(sender.summaries) == 1
    delivered_texts = sender.summaries[0]
    assert [t.splitlines()[0] for t in delivered_texts] == [
        "📰 Alpha: Bitcoin jumps as Fed signals cut",
        "📰 Charlie: Fed hike fears hit bitcoin",
        "📰 Bravo: Bitcoin flat after Fed minutes",
    ]
    assert "*85/100*" in delivered_texts[0]
    assert _ledger_urls(tmp_path) == [
        "https://news.example.com/alpha",
        "https://news.example.com/charlie",
        "https://news.example.com/bravo",
    ]
    data = json.loads((tmp_path / "sent_news.json").read_text(encoding="utf-8"))
    assert {r["sentAt"] for r in data["records"]} == {NOW.isoformat()}
    assert sender.notices == []
    assert not any("Delta" in call for call in oracle.calls)


def test_second_run_is_idempotent(tmp_path) -> None:
    sender = _FakeSender()
    _pipeline(tmp_path, items=ITEMS, oracle=_RoutingOracle(SCORES), sender=sender).run()
    first_ledger = (tmp_path / "sent_news.json").read_text(encoding="utf-8")

    oracle = _RoutingOracle(SCORES)
    result = _pipeline(tmp_path, items=ITEMS, oracle=oracle, sender=sender).run()

    assert result.status == "nothing_new"
    assert sender.notices == [NOTICE_NOTHING_NEW]
    assert len(sender.summaries) == 1
    assert (tmp_path / "sent_news.json").read_text(encoding="utf-8") == first_ledger
    assert not any(call.startswith("summary:") for call in oracle.calls)


@pytest.mark.parametrize(
    ("items", "relevant_titles", "status", "notice"),
    [
        ([], None, "no_news", NOTICE_NO_NEWS),
        ([ITEMS[3]], None, "no_keyword_match", NOTICE_NO_KEYWORD_MATCH),
        (ITEMS[:2], set(), "no_ai_match", NOTICE_NO_AI_MATCH),
    ],
)
def test_empty_stages_short_circuit_with_notice(tmp_path, items, relevant_titles, status, notice) -> None:
    sender = _FakeSender()
    oracle = _RoutingOracle(SCORES, relevant_titles)

    result = _pipeline(tmp_path, items=items, oracle=oracle, sender=sender).run()

    assert isinstance(result, PipelineResult)
    assert result.status == status
    assert result.short_circuited
    assert sender.notices == [notice]
    assert sender.summaries == []
    assert not (tmp_path / "sent_news.json").exists()


def test_partial_delivery_commits_only_delivered_items(tmp_path) -> None:
    sender = _FakeSender(fail_markers=("Charlie",))

    result = _pipeline(tmp_path, items=ITEMS, oracle=_RoutingOracle(SCORES), sender=sender).run()

    assert result.delivered == 2
    assert _ledger_urls(tmp_path) == [
        "https://news.example.com/alpha",
        "https://news.example.com/bravo",
    ]


def test_total_delivery_failure_raises_without_commit(tmp_path) -> None:
    sender = _FakeSender(fail_markers=("📰",))

    with pytest.raises(DeliveryError):
        _pipeline(tmp_path, items=ITEMS, oracle=_RoutingOracle(SCORES), sender=sender).run()

    assert _ledger_urls(tmp_path) == []


def test_items_sharing_a_url_are_delivered_and_recorded_once(tmp_path) -> None:
    first = _item("alpha", "Alpha: Bitcoin jumps as Fed signals cut")
    repeat = _item("alpha", "Alpha (web): Fed cut lifts bitcoin")
    oracle = _RoutingOracle({first.title: 85, repeat.title: 60})
    sender = _FakeSender()

    result = _pipeline(tmp_path, items=[repeat, first], oracle=oracle, sender=sender).run()

    assert result.delivered == 1
    assert len(sender.summaries[0]) == 1
    assert sender.summaries[0][0].startswith("📰 Alpha: Bitcoin jumps")
    assert _ledger_urls(tmp_path) == ["https://news.example.com/alpha"]
