from __future__ import annotations

import datetime

from crypto_news_digest.models import Direction, ImpactLevel, NewsItem, Origin
from crypto_news_digest.processing.scoring import (
    ImpactScorer,
    default_impact,
    impact_emoji,
    impact_from_result,
    impact_level_for,
    normalize_direction,
    validate_impact,
)
from crypto_news_digest.processing.types import OracleMalformed, OracleOk, OracleTransportError


class _ScriptedOracle:
    def __init__(self, results: list) -> None:
        self._results = list(results)
        self.calls = 0

    def complete(self, system_prompt: str, user_prompt: str, *, temperature: float = 0.3, max_tokens: int = 400):
        self.calls += 1
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _item(title: str) -> NewsItem:
    return NewsItem(
        title=title,
        description="desc",
        url=f"https://example.com/{title}",
        published_at=datetime.datetime(2024, 5, 1, tzinfo=datetime.timezone.utc),
        source="Example",
        origin=Origin.RSS,
    )


def _ok(total: float) -> OracleOk:
    return OracleOk(payload={"totalScore": total, "direction": "neutral", "reasoning": "r"}, raw="{}")


def test_validate_impact_clamps_each_field_independently() -> None:
    impact = validate_impact(
        {
            "policyStrength": -5,
            "expectationGap": 40,
            "timeUrgency": "12",
            "cryptoRelevance": 25,
            "totalScore": 150,
            "direction": "BULLISH",
            "reasoning": "금리 인하 기대",
        }
    )

    assert impact.policy_strength == 0
    assert impact.expectation_gap == 25
    assert impact.time_urgency == 12
    assert impact.crypto_relevance == 25
    assert impact.total_score == 100
    assert impact.level is ImpactLevel.CRITICAL
    assert impact.direction is Direction.BULLISH
    assert impact.reasoning == "금리 인하 기대"


def test_validate_impact_missing_or_non_numeric_fields_become_zero() -> None:
    impact = validate_impact({"policyStrength": "high", "totalScore": None})

    assert impact.policy_strength == 0
    assert impact.expectation_gap == 0
    assert impact.total_score == 0
    assert impact.level is ImpactLevel.NEGLIGIBLE
    assert impact.direction is Direction.NEUTRAL


def test_total_score_is_not_recomputed_from_sub_scores() -> None:
    impact = validate_impact(
        {"policyStrength": 25, "expectationGap": 25, "timeUrgency": 25, "cryptoRelevance": 25, "totalScore": 30}
    )
    assert impact.total_score == 30
    assert impact.level is ImpactLevel.LOW


def test_level_bands_and_emoji() -> None:
    assert impact_level_for(80) is ImpactLevel.CRITICAL
    assert impact_level_for(79.9) is ImpactLevel.HIGH
    assert impact_level_for(60) is ImpactLevel.HIGH
    assert impact_level_for(40) is ImpactLevel.MEDIUM
    assert impact_level_for(20) is ImpactLevel.LOW
    assert impact_level_for(19) is ImpactLevel.NEGLIGIBLE
    assert impact_emoji(85) == "🔴"
    assert impact_emoji(5) == "⚪"


def test_normalize_direction_aliases() -> None:
    assert normalize_direction("호재") is Direction.BULLISH
    assert normalize_direction("bearish") is Direction.BEARISH
    assert normalize_direction("sideways") is Direction.NEUTRAL
    assert normalize_direction(None) is Direction.NEUTRAL


def test_malformed_and_transport_results_use_defaults() -> None:
    malformed = impact_from_result(OracleMalformed("no json here"))
    transport = impact_from_result(OracleTransportError("timeout"))

    for impact in (malformed, transport):
        assert impact.policy_strength == 10
        assert impact.expectation_gap == 10
        assert impact.time_urgency == 10
        assert impact.crypto_relevance == 10
        assert impact.total_score == 40
        assert impact.level is ImpactLevel.MEDIUM
        assert impact.direction is Direction.NEUTRAL
    assert "파싱 실패" in malformed.reasoning
    assert "timeout" in transport.reasoning
    assert default_impact("x").reasoning == "x"


def test_score_all_sorts_descending_and_keeps_ties_in_input_order() -> None:
    oracle = _ScriptedOracle([_ok(40), _ok(90), _ok(40), _ok(10)])
    scorer = ImpactScorer(oracle=oracle, logger=lambda _msg: None)
    items = [_item("a"), _item("b"), _item("c"), _item("d")]

    ranked = scorer.score_all(items)

    assert [i.title for i in ranked] == ["b", "a", "c", "d"]
    assert [i.impact.total_score for i in ranked if i.impact] == [90, 40, 40, 10]
    assert oracle.calls == 4


def test_score_all_survives_raising_oracle() -> None:
    oracle = _ScriptedOracle([RuntimeError("boom"), _ok(70)])
    scorer = ImpactScorer(oracle=oracle, logger=lambda _msg: None)

    ranked = scorer.score_all([_item("a"), _item("b")])

    assert [i.title for i in ranked] == ["b", "a"]
    assert ranked[1].impact is not None
    assert ranked[1].impact.total_score == 40
    assert "boom" in ranked[1].impact.reasoning


def test_score_all_empty() -> None:
    scorer = ImpactScorer(oracle=_ScriptedOracle([]), logger=lambda _msg: None)
    assert scorer.score_all([]) == []
