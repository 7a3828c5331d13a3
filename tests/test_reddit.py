from types import SimpleNamespace

from market_pulse.config import Settings
from market_pulse.reddit import (
    RedditMonitor,
    filter_high_impact_posts,
    has_high_engagement,
    is_low_quality,
)


def _post(pid, title, score=0, comments=0, author="someone"):
    return SimpleNamespace(
        id=pid,
        title=title,
        permalink=f"/r/stocks/comments/{pid}/",
        url=f"https://example.invalid/{pid}",
        created_utc=1714564800,
        selftext="",
        score=score,
        num_comments=comments,
        author=author,
    )


class FakeReddit:
    def __init__(self, posts_by_sub):
        self.posts_by_sub = posts_by_sub
        self.calls = []

    def subreddit(self, name):
        client = self

        class _Sub:
            def hot(self, limit):
                client.calls.append((name, limit))
                posts = client.posts_by_sub[name]
                if isinstance(posts, Exception):
                    raise posts
                return iter(posts[:limit])

        return _Sub()


def _monitor(posts_by_sub):
    settings = Settings(reddit_subreddits=list(posts_by_sub), reddit_post_limit=20)
    client = FakeReddit(posts_by_sub)
    return RedditMonitor(settings, client=client), client


def test_fetch_posts_keeps_engaged_keyword_posts():
    monitor, _ = _monitor(
        {
            "stocks": [
                _post("p1", "TSLA short squeeze incoming before earnings", score=500),
                _post("p2", "Daily discussion thread for Monday", score=1000),
                _post("p3", "Fed rate cut odds are climbing", score=5, comments=3),
                _post("p4", "[deleted] merger rumor post", score=900),
                _post("p5", "Bitcoin rally continues strong", score=300, author=None),
                _post("p6", "Crypto miners pile into energy deals", comments=120),
            ]
        }
    )
    posts = monitor.fetch_posts()
    assert [p.id for p in posts] == ["reddit_p1", "reddit_p6"]
    assert posts[0].source_name == "r/stocks"
    assert posts[0].is_reddit
    assert posts[0].url == "https://www.reddit.com/r/stocks/comments/p1/"


def test_failing_subreddit_does_not_stop_others():
    monitor, _ = _monitor(
        {
            "broken": RuntimeError("403"),
            "stocks": [_post("p1", "NVDA earnings blowout, calls printing", score=250)],
        }
    )
    assert [p.id for p in monitor.fetch_posts()] == ["reddit_p1"]


def test_subreddit_listing_is_cached():
    monitor, client = _monitor(
        {"stocks": [_post("p1", "NVDA earnings blowout, calls printing", score=250)]}
    )
    monitor.fetch_posts()
    monitor.fetch_posts()
    assert client.calls == [("stocks", 20)]


def test_unconfigured_monitor_returns_nothing():
    monitor = RedditMonitor(Settings())
    assert not monitor.is_configured()
    assert monitor.fetch_posts() == []


def test_quality_and_engagement_rules(make_item):
    short = make_item("YOLO", source_category="reddit")
    assert is_low_quality(short)
    assert is_low_quality(make_item("A perfectly fine title"), author="[deleted]")
    assert not is_low_quality(make_item("A perfectly fine title"), author="trader")

    assert has_high_engagement(make_item("x" * 20, reddit_score=101))
    assert has_high_engagement(make_item("x" * 20, reddit_comments=51))
    assert not has_high_engagement(make_item("x" * 20, reddit_score=100, reddit_comments=50))


def test_reddit_slang_counts_as_keyword(make_item):
    post = make_item(
        "Diamond hands on this one, to the moon",
        source_category="reddit",
        reddit_score=700,
    )
    assert filter_high_impact_posts([post]) == [post]
