import json
from datetime import datetime, timedelta, timezone

import pytest

from market_pulse import feeds
from market_pulse.sources import FeedSource

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
  <title>Test Wire</title>
  <item>
    <title>Fed holds &lt;b&gt;rates&lt;/b&gt; steady</title>
    <link>https://news.example/fed-holds</link>
    <guid>fed-holds-1</guid>
    <description>&lt;p&gt;The Federal Reserve &lt;b&gt;kept&lt;/b&gt; rates unchanged.&lt;/p&gt;</description>
    <pubDate>Wed, 01 May 2024 12:00:00 GMT</pubDate>
  </item>
  <item>
    <title>Oil slides on supply news</title>
    <link>https://news.example/oil-slides</link>
    <pubDate>Tue, 01 Jan 2019 08:00:00 GMT</pubDate>
  </item>
  <item>
    <link>https://news.example/untitled</link>
  </item>
</channel>
</rss>
"""

SRC = FeedSource("Test Wire", "https://news.example/rss", "financial", "high")
REDDIT_SRC = FeedSource(
    "Reddit Stocks",
    "https://www.reddit.com/r/stocks/hot.json",
    "reddit",
    "high",
    is_reddit=True,
    subreddit="stocks",
)


def _listing():
    return json.dumps(
        {
            "kind": "Listing",
            "data": {
                "children": [
                    {
                        "kind": "t3",
                        "data": {
                            "name": "t3_abc",
                            "id": "abc",
                            "title": "NVDA earnings thread",
                            "permalink": "/r/stocks/comments/abc/nvda/",
                            "selftext": "Post your calls",
                            "created_utc": 1714564800,
                            "score": 420,
                            "num_comments": 99,
                        },
                    },
                    {"kind": "t3", "data": {"name": "t3_empty", "title": ""}},
                ]
            },
        }
    )


def test_clean_html_content():
    assert feeds.clean_html_content("<p>Breaking: <b>TSLA</b> surges 10%</p>") == (
        "Breaking: TSLA surges 10%"
    )
    assert feeds.clean_html_content("Shares&nbsp;<br/>rally\n\n hard") == "Shares rally hard"
    assert feeds.clean_html_content(None) == ""


def test_parse_rss_normalizes_items():
    items = feeds.parse_rss(SRC, RSS)
    assert [i.id for i in items] == ["fed-holds-1", "https://news.example/oil-slides"]
    first = items[0]
    assert first.title == "Fed holds rates steady"
    assert first.description == "The Federal Reserve kept rates unchanged."
    assert first.published_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert first.source_name == "Test Wire"
    assert first.source_priority == "high"


def test_parse_reddit_listing():
    items = feeds.parse_reddit_listing(REDDIT_SRC, _listing())
    assert len(items) == 1
    it = items[0]
    assert it.id == "t3_abc"
    assert it.url == "https://www.reddit.com/r/stocks/comments/abc/nvda/"
    assert it.reddit_score == 420
    assert it.reddit_comments == 99
    assert it.is_reddit
    assert it.published_at == datetime.fromtimestamp(1714564800, tz=timezone.utc)


def test_parse_reddit_listing_rejects_other_json():
    with pytest.raises(ValueError):
        feeds.parse_reddit_listing(REDDIT_SRC, '{"kind": "t1"}')
    with pytest.raises(ValueError):
        feeds.parse_reddit_listing(REDDIT_SRC, "[]")


@pytest.mark.asyncio
async def test_fetch_source_drops_stale_items(monkeypatch):
    async def fake_get(url, session, timeout=12):
        return 200, RSS

    monkeypatch.setattr(feeds, "_get_async", fake_get)
    cutoff = datetime(2024, 4, 24, tzinfo=timezone.utc)
    items, stats = await feeds.fetch_source(SRC, None, cutoff)
    assert [i.id for i in items] == ["fed-holds-1"]
    assert stats["ok"] == 1
    assert stats["entries"] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,key", [(404, "http4"), (503, "http5"), (599, "errors")]
)
async def test_fetch_source_http_failures(monkeypatch, status, key):
    async def fake_get(url, session, timeout=12):
        return status, None

    monkeypatch.setattr(feeds, "_get_async", fake_get)
    items, stats = await feeds.fetch_source(SRC, None, datetime.now(timezone.utc))
    assert items == []
    assert stats[key] == 1
    assert stats["ok"] == 0


@pytest.mark.asyncio
async def test_fetch_source_garbage_body_never_raises(monkeypatch):
    async def fake_get(url, session, timeout=12):
        return 200, "<html>definitely not json</html>"

    monkeypatch.setattr(feeds, "_get_async", fake_get)
    items, stats = await feeds.fetch_source(REDDIT_SRC, None, datetime.now(timezone.utc))
    assert items == []
    assert stats["errors"] == 1


@pytest.mark.asyncio
async def test_fetch_all_isolates_failing_sources(monkeypatch):
    broken = FeedSource("Broken Wire", "https://broken.example/rss", "financial")

    async def fake_get(url, session, timeout=12):
        if "broken" in url:
            return 500, None
        return 200, RSS

    monkeypatch.setattr(feeds, "_get_async", fake_get)
    now = datetime(2024, 5, 2, tzinfo=timezone.utc)
    items, summary = await feeds.fetch_all(
        [broken, SRC], max_age=timedelta(days=7), now=now
    )
    assert [i.id for i in items] == ["fed-holds-1"]
    assert summary["Broken Wire"]["http5"] == 1
    assert summary["Test Wire"]["ok"] == 1
