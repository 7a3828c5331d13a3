from market_pulse.config import Settings
from market_pulse.sources import SOURCES, active_sources


def test_registry_is_large_and_unique():
    names = [s.name for s in SOURCES]
    assert len(SOURCES) >= 50
    assert len(names) == len(set(names))
    assert all(s.url.startswith(("https://", "http://")) for s in SOURCES)
    assert all(s.priority in {"critical", "high", "medium", "low"} for s in SOURCES)


def test_reddit_sources_point_at_json_listings():
    reddit = [s for s in SOURCES if s.is_reddit]
    assert reddit
    for s in reddit:
        assert s.category == "reddit"
        assert s.url == f"https://www.reddit.com/r/{s.subreddit}/hot.json"


def test_skip_sources_is_case_insensitive():
    settings = Settings(skip_sources=["marketwatch", "SEC News"])
    names = {s.name for s in active_sources(settings)}
    assert "MarketWatch" not in names
    assert "SEC News" not in names
    assert len(names) == len(SOURCES) - 2


def test_url_override_replaces_only_the_url():
    settings = Settings(feed_url_overrides={"benzinga": "https://mirror.example/bz"})
    src = next(s for s in active_sources(settings) if s.name == "Benzinga")
    assert src.url == "https://mirror.example/bz"
    assert src.priority == "high"
    registry_entry = next(s for s in SOURCES if s.name == "Benzinga")
    assert registry_entry.url == "https://www.benzinga.com/feeds/news"


def test_reddit_sources_carry_descriptor_keywords():
    econ = next(s for s in SOURCES if s.subreddit == "economics")
    assert "fed" in econ.impact_keywords
    assert all(s.impact_keywords for s in SOURCES if s.is_reddit)
