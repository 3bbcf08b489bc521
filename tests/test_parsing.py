from __future__ import annotations

import datetime

from crypto_news_digest.models import Origin
from crypto_news_digest.processing.parsing import EntryParser, WebRecord

FIXED_NOW = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
SOURCE = {"name": "Example Feed", "url": "https://news.example.com/feed.xml"}


class _Entry:
    def __init__(self, **fields: object) -> None:
        for key, value in fields.items():
            setattr(self, key, value)


def _parser() -> EntryParser:
    return EntryParser(now_provider=lambda: FIXED_NOW)


def test_parse_rss_entry_cleans_text_and_reads_struct_time() -> None:
    entry = _Entry(
        title="  Fed&nbsp;<b>cuts</b> rates ",
        link="https://news.example.com/a",
        summary="<p>Bitcoin &amp; gold rally</p>",
        published_parsed=(2024, 3, 20, 18, 30, 0, 2, 80, 0),
    )

    item = _parser().parse_rss_entry(entry, SOURCE)

    assert item is not None
    assert item.title == "Fed cuts rates"
    assert item.description == "Bitcoin & gold rally"
    assert item.published_at == datetime.datetime(2024, 3, 20, 18, 30, tzinfo=datetime.timezone.utc)
    assert item.source == "Example Feed"
    assert item.origin is Origin.RSS


def test_parse_rss_entry_accepts_dict_entries_and_falls_back() -> None:
    entry = {
        "title": "CPI report",
        "id": "/posts/cpi",
        "content": [{"value": "<p>Consumer prices rose</p>"}],
        "published": "Wed, 20 Mar 2024 18:30:00 +0900",
    }

    item = _parser().parse_rss_entry(entry, SOURCE)

    assert item is not None
    assert item.url == "https://news.example.com/posts/cpi"
    assert item.description == "Consumer prices rose"
    assert item.published_at == datetime.datetime(2024, 3, 20, 9, 30, tzinfo=datetime.timezone.utc)


def test_unparseable_date_defaults_to_now() -> None:
    entry = _Entry(title="t", link="https://news.example.com/a", published="sometime soon")

    item = _parser().parse_rss_entry(entry, SOURCE)

    assert item is not None
    assert item.published_at == FIXED_NOW


def test_items_without_title_or_url_are_dropped() -> None:
    parser = _parser()
    raw = [
        _Entry(title="", link="https://news.example.com/a"),
        _Entry(title="no link"),
        _Entry(title="mailto", link="mailto:desk@example.com"),
        _Entry(title="kept", link="https://news.example.com/kept"),
    ]

    items = parser.parse_many(raw, SOURCE, Origin.RSS)

    assert [i.title for i in items] == ["kept"]


def test_parse_web_record_resolves_relative_links() -> None:
    source = {"name": "Fed Speeches", "url": "https://www.federalreserve.gov/newsevents/speeches.htm"}
    record = WebRecord(
        title="Powell on the outlook",
        href="/newsevents/speech/powell20240320a.htm",
        description="Remarks on inflation",
        date_text="2024-03-20T14:00:00Z",
    )

    item = _parser().parse_web_record(record, source)

    assert item is not None
    assert item.url == "https://www.federalreserve.gov/newsevents/speech/powell20240320a.htm"
    assert item.origin is Origin.WEB
    assert item.published_at == datetime.datetime(2024, 3, 20, 14, 0, tzinfo=datetime.timezone.utc)


def test_resolve_url_rejects_relative_without_base() -> None:
    parser = _parser()
    assert parser.resolve_url("/a", "") == ""
    assert parser.resolve_url("https://x.example/a", "") == "https://x.example/a"
