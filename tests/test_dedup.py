from datetime import datetime, timedelta, timezone

import pytest

from market_pulse.dedup import RecentItemCache, filter_new_high_impact, recent_items
from market_pulse.models import ScoredItem


def _scored(make_item, item_id, score):
    return ScoredItem(item=make_item(f"headline {item_id}", id=item_id), impact_score=score)


def test_filter_drops_low_scores_and_records_passing(make_item):
    cache = RecentItemCache(100)
    batch = [_scored(make_item, "a", 8), _scored(make_item, "b", 3), _scored(make_item, "c", 5)]
    out = filter_new_high_impact(batch, 5, cache)
    assert [s.id for s in out] == ["a", "c"]
    assert "a" in cache and "c" in cache
    assert "b" not in cache


def test_item_alerted_once_across_ticks(make_item):
    cache = RecentItemCache(100)
    batch = [_scored(make_item, "a", 8)]
    assert len(filter_new_high_impact(batch, 5, cache)) == 1
    assert filter_new_high_impact(batch, 5, cache) == []


def test_duplicate_ids_in_one_batch(make_item):
    cache = RecentItemCache(100)
    batch = [_scored(make_item, "a", 8), _scored(make_item, "a", 8)]
    assert len(filter_new_high_impact(batch, 5, cache)) == 1


def test_duplicate_survives_trim_within_batch(make_item):
    # max_size 2 trims down to one entry on every overflow
    cache = RecentItemCache(2)
    batch = [
        _scored(make_item, "a", 9),
        _scored(make_item, "b", 9),
        _scored(make_item, "c", 9),
        _scored(make_item, "a", 9),
    ]
    out = filter_new_high_impact(batch, 5, cache)
    assert [s.id for s in out] == ["a", "b", "c"]


def test_trim_keeps_newest_half(make_item):
    cache = RecentItemCache(4)
    for i in "abcde":
        cache.add(make_item(f"headline {i}", id=i))
    assert cache.keys() == ["d", "e"]
    assert len(cache) == 2


def test_cache_size_validation():
    with pytest.raises(ValueError):
        RecentItemCache(1)


def test_recent_items_newest_first(make_item):
    cache = RecentItemCache(10)
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    for i in range(5):
        cache.add(make_item(f"headline {i}", id=str(i), published_at=base + timedelta(hours=i)))
    out = recent_items(cache, limit=3)
    assert [i.id for i in out] == ["4", "3", "2"]
    assert len(recent_items(cache, limit=None)) == 5
