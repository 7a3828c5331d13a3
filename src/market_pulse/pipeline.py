"""One polling tick: fetch, score, dedupe, analyze, alert."""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from . import feeds
from .alerts import AlertDispatcher, console_alert
from .analysis import FallbackAnalyzer, analysis_stats, build_analyzer
from .config import Settings, get_settings
from .dedup import RecentItemCache, filter_new_high_impact, recent_items
from .logging_utils import get_logger
from .models import Category, FeedItem, ScoredItem
from .reddit import RedditMonitor
from .scoring import score_item, score_items
from .sources import FeedSource, active_sources

log = get_logger("pipeline")

Fetcher = Callable[[], Awaitable[List[FeedItem]]]


@dataclass
class PipelineStats:
    total_news_processed: int = 0
    total_reddit_processed: int = 0
    total_alerts_sent: int = 0
    total_ai_analyses: int = 0
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalNewsProcessed": self.total_news_processed,
            "totalRedditProcessed": self.total_reddit_processed,
            "totalAlertsSent": self.total_alerts_sent,
            "totalAIAnalyses": self.total_ai_analyses,
            "startTime": self.start_time.isoformat(),
        }


@dataclass
class TickResult:
    fetched: int = 0
    new_news: int = 0
    new_reddit: int = 0
    dispatched: List[ScoredItem] = field(default_factory=list)
    alert_sent: bool = False
    t_ms: float = 0.0


class Pipeline:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        sources: Optional[List[FeedSource]] = None,
        fetcher: Optional[Fetcher] = None,
        analyzer: Optional[FallbackAnalyzer] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        cache: Optional[RecentItemCache] = None,
        reddit: Optional[RedditMonitor] = None,
    ):
        self.settings = settings or get_settings()
        self.sources = list(sources) if sources is not None else list(active_sources(self.settings))
        self._fetcher = fetcher
        self.analyzer = analyzer or build_analyzer(self.settings)
        self.dispatcher = dispatcher or AlertDispatcher(settings=self.settings)
        self.cache = cache if cache is not None else RecentItemCache(self.settings.seen_cache_size)
        self.reddit = reddit if reddit is not None else RedditMonitor(self.settings)
        self.stats = PipelineStats()
        self.last_fetch_summary: Dict[str, Any] = {}

    async def fetch_news(self) -> List[FeedItem]:
        if self._fetcher is not None:
            return await self._fetcher()
        items, summary = await feeds.fetch_all(
            self.sources,
            max_age=timedelta(days=self.settings.max_article_age_days),
            timeout=self.settings.feed_timeout_secs,
        )
        self.last_fetch_summary = summary
        return items

    async def fetch_reddit(self) -> List[FeedItem]:
        if not self.reddit.is_configured():
            return []
        try:
            return await asyncio.to_thread(self.reddit.fetch_posts)
        except Exception as e:
            log.warning("reddit_monitor_failed err=%s", e.__class__.__name__)
            return []

    async def run_once(self, now: Optional[datetime] = None) -> TickResult:
        st = time.time()
        res = TickResult()

        news_items, reddit_posts = await asyncio.gather(
            self.fetch_news(), self.fetch_reddit()
        )
        res.fetched = len(news_items) + len(reddit_posts)

        new_news = filter_new_high_impact(
            score_items(news_items), self.settings.min_impact_score, self.cache
        )
        # Monitor posts already passed the engagement filter; only dedupe them.
        new_reddit = filter_new_high_impact(score_items(reddit_posts), 0, self.cache)
        res.new_news, res.new_reddit = len(new_news), len(new_reddit)
        log.info(
            "tick_filtered fetched=%d new_news=%d new_reddit=%d cache=%d",
            res.fetched,
            res.new_news,
            res.new_reddit,
            len(self.cache),
        )

        batch = new_news + new_reddit
        if batch:
            analyzed = await self.analyzer.batch_analyze(batch)
            self.stats.total_ai_analyses += len(analyzed)

            console_alert(analyzed)
            res.alert_sent = await self.dispatcher.dispatch(analyzed, now=now)
            if res.alert_sent:
                self.stats.total_alerts_sent += len(analyzed)
            else:
                log.info("alerts_console_only reason=no_channel_delivered")

            self.stats.total_news_processed += len(new_news)
            self.stats.total_reddit_processed += len(new_reddit)
            res.dispatched = analyzed
            log.info("analysis_summary", extra={"analysis": analysis_stats(analyzed)})
        else:
            log.info("tick_no_new_items")

        res.t_ms = round((time.time() - st) * 1000.0, 1)
        return res

    def news_stats(self) -> Dict[str, Any]:
        scored = [score_item(i) for i in self.cache.values()]
        counts = Counter(s.category.value for s in scored)
        return {
            "total": len(scored),
            "highImpact": sum(1 for s in scored if s.impact_score >= 7),
            "sources": len(self.sources),
            "categories": {c.value: counts.get(c.value, 0) for c in Category},
            "avgImpactScore": (
                sum(s.impact_score for s in scored) / len(scored) if scored else 0.0
            ),
        }

    def recent_news(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Newest cached items, scored, for the stats endpoint."""
        out = []
        for it in recent_items(self.cache, limit):
            s = score_item(it)
            out.append(
                {
                    "id": it.id,
                    "title": it.title,
                    "url": it.url,
                    "source": it.source_name,
                    "publishedAt": it.published_at.isoformat(),
                    "impactScore": s.impact_score,
                    "category": s.category.value,
                }
            )
        return out
