from datetime import timedelta

import pytest

from market_pulse.alerts import AlertDispatcher
from market_pulse.analysis import FallbackAnalyzer
from market_pulse.channels import Channel, TransportError
from market_pulse.config import Settings
from market_pulse.dedup import RecentItemCache
from market_pulse.pipeline import Pipeline


class RecordingChannel(Channel):
    def __init__(self, channel_id, ok=True):
        self.channel_id = channel_id
        super().__init__(timedelta(0))
        self.ok = ok
        self.batches = []

    def is_configured(self):
        return True

    def send(self, batch):
        self.batches.append([s.id for s in batch])
        if not self.ok:
            raise TransportError("down", 503)


class StubReddit:
    def __init__(self, posts=()):
        self.posts = list(posts)

    def is_configured(self):
        return True

    def fetch_posts(self):
        return list(self.posts)


def _fetcher(items):
    async def _fetch():
        return list(items)

    return _fetch


@pytest.fixture
def news(make_item):
    fed = make_item(
        "BREAKING: Fed announces surprise rate hike",
        id="A",
        description="Federal Reserve raises interest rates by 75 basis points",
    )
    bakery = make_item("Local bakery opens new storefront downtown", id="B")
    seen = make_item("NVDA earnings beat, shares surge", id="C")
    return fed, bakery, seen


def _pipeline(items, cache, channels, reddit=None):
    return Pipeline(
        Settings(),
        sources=[],
        fetcher=_fetcher(items),
        analyzer=FallbackAnalyzer(),
        dispatcher=AlertDispatcher(channels=channels),
        cache=cache,
        reddit=reddit or StubReddit(),
    )


@pytest.mark.asyncio
async def test_tick_alerts_only_new_high_impact_items(news):
    fed, bakery, seen = news
    cache = RecentItemCache(100)
    cache.add(seen)
    chans = [RecordingChannel("email")] + [
        RecordingChannel(f"bad{i}", ok=False) for i in range(5)
    ]
    p = _pipeline([fed, bakery, seen], cache, chans)

    res = await p.run_once()

    assert [s.id for s in res.dispatched] == ["A"]
    assert res.dispatched[0].analysis is not None
    assert res.alert_sent is True
    assert all(c.batches == [["A"]] for c in chans)
    assert "A" in cache and "B" not in cache
    assert p.stats.total_news_processed == 1
    assert p.stats.total_alerts_sent == 1
    assert p.stats.total_ai_analyses == 1


@pytest.mark.asyncio
async def test_second_tick_does_not_realert(news):
    fed, bakery, _ = news
    chan = RecordingChannel("email")
    p = _pipeline([fed, bakery], RecentItemCache(100), [chan])
    await p.run_once()
    res = await p.run_once()
    assert res.dispatched == []
    assert res.alert_sent is False
    assert chan.batches == [["A"]]


@pytest.mark.asyncio
async def test_alert_not_sent_when_every_channel_fails(news):
    fed, _, _ = news
    p = _pipeline([fed], RecentItemCache(100), [RecordingChannel("email", ok=False)])
    res = await p.run_once()
    assert [s.id for s in res.dispatched] == ["A"]
    assert res.alert_sent is False
    assert p.stats.total_alerts_sent == 0


@pytest.mark.asyncio
async def test_reddit_posts_join_the_batch(news, make_item):
    fed, _, _ = news
    post = make_item(
        "Diamond hands crew loading up before the weekend",
        id="reddit_p1",
        source_category="reddit",
        source_name="r/wallstreetbets",
        reddit_score=900,
    )
    chan = RecordingChannel("email")
    p = _pipeline([fed], RecentItemCache(100), [chan], reddit=StubReddit([post]))
    res = await p.run_once()
    assert [s.id for s in res.dispatched] == ["A", "reddit_p1"]
    assert res.new_reddit == 1
    assert p.stats.total_reddit_processed == 1


@pytest.mark.asyncio
async def test_news_stats_reflect_cache(news):
    fed, _, seen = news
    cache = RecentItemCache(100)
    cache.add(seen)
    p = _pipeline([fed], cache, [RecordingChannel("email")])
    await p.run_once()
    st = p.news_stats()
    assert st["total"] == 2
    assert st["highImpact"] == 2
    assert st["categories"]["fed"] == 1
    assert st["categories"]["earnings"] == 1
    assert st["sources"] == 0
