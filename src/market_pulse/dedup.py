"""Recently-alerted item cache and the new-and-high-impact filter.

The cache lives for the process lifetime only. It is keyed by item id,
remembers insertion order, and when it grows past ``max_size`` it keeps only
the newest ``max_size // 2`` entries.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterator, List, Optional, Sequence

from .logging_utils import get_logger
from .models import FeedItem, ScoredItem

log = get_logger("dedup")


class RecentItemCache:
    def __init__(self, max_size: int = 1000):
        if max_size < 2:
            raise ValueError("max_size must be >= 2")
        self.max_size = max_size
        self._items: "OrderedDict[str, FeedItem]" = OrderedDict()

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def keys(self) -> List[str]:
        return list(self._items)

    def values(self) -> List[FeedItem]:
        return list(self._items.values())

    def add(self, item: FeedItem) -> None:
        self._items[item.id] = item
        if len(self._items) > self.max_size:
            self._trim()

    def clear(self) -> None:
        self._items.clear()

    def _trim(self) -> None:
        keep = self.max_size // 2
        before = len(self._items)
        while len(self._items) > keep:
            self._items.popitem(last=False)
        log.debug("seen_cache_trimmed before=%d after=%d", before, len(self._items))


def filter_new_high_impact(
    scored: Sequence[ScoredItem],
    min_score: int,
    cache: RecentItemCache,
) -> List[ScoredItem]:
    """Return the items worth alerting on and remember them.

    An item passes when its score is at least ``min_score`` and its id has
    not been seen in an earlier tick or earlier in this batch. Every passing
    item is recorded in ``cache`` before the next one is checked.
    """
    out: List[ScoredItem] = []
    batch_ids = set()
    for s in scored:
        if s.impact_score < min_score:
            continue
        # batch_ids covers ids trimmed out of the cache earlier in this batch
        if s.id in cache or s.id in batch_ids:
            continue
        cache.add(s.item)
        batch_ids.add(s.id)
        out.append(s)
    return out


def recent_items(
    cache: RecentItemCache, limit: Optional[int] = 20
) -> List[FeedItem]:
    """Most recently published cached items first."""
    items = sorted(cache.values(), key=lambda i: i.published_at, reverse=True)
    return items if limit is None else items[:limit]
