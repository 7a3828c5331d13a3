"""Authenticated Reddit monitor (praw).

Complements the public ``hot.json`` sources in the registry with the
trading subreddits, which need an authenticated client. Disabled unless all
four ``REDDIT_*`` credentials are set. praw is synchronous, so the pipeline
calls :meth:`RedditMonitor.fetch_posts` from a worker thread.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, List, Optional

import praw
from cachetools import TTLCache

from . import keywords as kw
from .config import Settings, get_settings
from .logging_utils import get_logger
from .models import FeedItem

log = get_logger("reddit")

ENGAGEMENT_MIN_SCORE = 100
ENGAGEMENT_MIN_COMMENTS = 50
CACHE_TTL_SECS = 300


def _post_to_item(post: Any, subreddit: str) -> Optional[FeedItem]:
    title = (getattr(post, "title", "") or "").strip()
    post_id = getattr(post, "id", None)
    if not title or not post_id:
        return None
    permalink = getattr(post, "permalink", "") or ""
    created = getattr(post, "created_utc", None)
    return FeedItem(
        id=f"reddit_{post_id}",
        title=title,
        url=f"https://www.reddit.com{permalink}" if permalink else getattr(post, "url", ""),
        published_at=(
            datetime.fromtimestamp(float(created), tz=timezone.utc)
            if created is not None
            else datetime.now(timezone.utc)
        ),
        source_name=f"r/{subreddit}",
        source_category="reddit",
        source_priority="high",
        description=getattr(post, "selftext", "") or "",
        reddit_score=int(getattr(post, "score", 0) or 0),
        reddit_comments=int(getattr(post, "num_comments", 0) or 0),
    )


def is_low_quality(item: FeedItem, author: Optional[str] = None) -> bool:
    title = item.title
    return (
        len(title) < 10
        or "[removed]" in title
        or "[deleted]" in title
        or author == "[deleted]"
    )


def has_high_engagement(item: FeedItem) -> bool:
    return (
        item.reddit_score > ENGAGEMENT_MIN_SCORE
        or item.reddit_comments > ENGAGEMENT_MIN_COMMENTS
    )


def has_impact_keyword(item: FeedItem) -> bool:
    text = item.text.lower()
    if any(kw.contains(text, r.term) for r in kw.IMPACT_KEYWORDS):
        return True
    return bool(kw.matching(text, kw.REDDIT_SIGNAL_TERMS))


def filter_high_impact_posts(posts: List[FeedItem]) -> List[FeedItem]:
    return [
        p
        for p in posts
        if has_high_engagement(p) and has_impact_keyword(p) and not is_low_quality(p)
    ]


class RedditMonitor:
    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        self.settings = settings or get_settings()
        self._client = client
        self._cache: TTLCache = TTLCache(maxsize=64, ttl=CACHE_TTL_SECS)
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return self._client is not None or self.settings.reddit_configured

    def _reddit(self):
        if self._client is None:
            s = self.settings
            self._client = praw.Reddit(
                client_id=s.reddit_client_id,
                client_secret=s.reddit_client_secret,
                username=s.reddit_username,
                password=s.reddit_password,
                user_agent=s.reddit_user_agent,
            )
        return self._client

    def subreddit_posts(self, name: str, limit: int) -> List[FeedItem]:
        key = (name.lower(), limit)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            log.debug("reddit_cache_hit subreddit=%s", name)
            return cached

        posts: List[FeedItem] = []
        for post in self._reddit().subreddit(name).hot(limit=limit):
            # praw reports a deleted account as author None
            author = getattr(post, "author", None)
            it = _post_to_item(post, name)
            if it is None:
                continue
            if is_low_quality(it, str(author) if author is not None else "[deleted]"):
                continue
            posts.append(it)

        with self._lock:
            self._cache[key] = posts
        log.info("reddit_fetched subreddit=%s posts=%d", name, len(posts))
        return posts

    def fetch_posts(self) -> List[FeedItem]:
        """High-engagement, keyword-bearing posts across the configured subreddits."""
        if not self.is_configured():
            return []
        limit = self.settings.reddit_post_limit
        collected: List[FeedItem] = []
        for name in self.settings.reddit_subreddits:
            try:
                collected.extend(self.subreddit_posts(name, limit))
            except Exception as e:
                log.warning(
                    "reddit_fetch_error subreddit=%s err=%s", name, e.__class__.__name__
                )
        collected.sort(key=lambda p: p.reddit_score, reverse=True)
        selected = filter_high_impact_posts(collected)
        log.info(
            "reddit_filtered total=%d high_impact=%d", len(collected), len(selected)
        )
        return selected
