from __future__ import annotations

import datetime

from crypto_news_digest.models import NewsItem, Origin
from crypto_news_digest.processing.keyword_filter import KeywordFilter


def _item(title: str, description: str = "") -> NewsItem:
    return NewsItem(
        title=title,
        description=description,
        url=f"https://example.com/{abs(hash(title))}",
        published_at=datetime.datetime(2024, 5, 1, tzinfo=datetime.timezone.utc),
        source="Example",
        origin=Origin.RSS,
    )


def test_match_counts_categories_from_zero_to_three() -> None:
    kf = KeywordFilter()

    assert kf.match(_item("Local bakery opens new shop")).count == 0
    assert kf.match(_item("Bitcoin climbs")).count == 1
    assert kf.match(_item("Bitcoin rallies as Fed signals pause")).count == 2
    assert kf.match(_item("Bitcoin jumps after Fed comments on CPI")).count == 3


def test_match_is_case_insensitive_and_reads_description() -> None:
    kf = KeywordFilter()
    matches = kf.match(_item("Markets today", "POWELL says INFLATION is cooling, bitcoin reacts"))

    assert matches.fed is True
    assert matches.crypto is True
    assert matches.macro is False


def test_filter_keeps_two_or_more_and_annotates() -> None:
    logs: list[str] = []
    kf = KeywordFilter(logger=logs.append)
    items = [
        _item("Local bakery opens new shop"),
        _item("Bitcoin climbs"),
        _item("Bitcoin rallies as Fed signals pause"),
        _item("Bitcoin jumps after Fed comments on CPI"),
    ]

    kept = kf.filter(items)

    assert [i.title for i in kept] == [
        "Bitcoin rallies as Fed signals pause",
        "Bitcoin jumps after Fed comments on CPI",
    ]
    assert kept[0].keyword_matches is not None and kept[0].keyword_matches.count == 2
    assert kept[1].keyword_matches is not None and kept[1].keyword_matches.count == 3
    # 원본 아이템은 변경되지 않는다
    assert items[2].keyword_matches is None
    assert any("2/4" in line for line in logs)


def test_filter_with_custom_categories() -> None:
    kf = KeywordFilter(
        categories={"crypto": ("solana",), "fed": ("ecb",), "macro": ()},
        min_categories=1,
    )

    kept = kf.filter([_item("Solana upgrade ships"), _item("Bitcoin climbs")])

    assert [i.title for i in kept] == ["Solana upgrade ships"]
