"""Concurrent RSS/Atom and Reddit JSON fetching.

Every source is fetched in parallel over one shared ``aiohttp`` session. A
source that times out, answers non-200 or returns garbage contributes zero
items and a warning; it never takes the other sources down with it.
"""

from __future__ import annotations

import asyncio
import html
import json
import random
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import aiohttp
import feedparser
from bs4 import BeautifulSoup
from dateutil import parser as dtparse

from .logging_utils import get_logger
from .models import FeedItem
from .sources import FeedSource

log = get_logger("feeds")

USER_AGENT = "Mozilla/5.0 (compatible; MarketPulse/0.1; +https://example.invalid/market-pulse)"

FeedStats = Dict[str, Any]


async def _get_async(
    url: str, session: aiohttp.ClientSession, timeout: int = 12
) -> Tuple[int, Optional[str]]:
    """GET ``url`` with up to three attempts; 599 stands in for network failure."""
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": (
            "application/rss+xml, application/atom+xml, application/json, "
            "application/xml;q=0.9, */*;q=0.8"
        ),
    }
    for attempt in range(0, 3):
        try:
            async with session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as resp:
                text = await resp.text()
                # Retry on throttling and transient server errors only.
                if (resp.status == 429 or resp.status >= 500) and attempt < 2:
                    await asyncio.sleep(min(2**attempt, 4) + random.uniform(0, 0.25))
                    continue
                return resp.status, text
        except (asyncio.TimeoutError, aiohttp.ClientError):
            if attempt >= 2:
                return 599, None
            await asyncio.sleep(min(2**attempt, 4) + random.uniform(0, 0.25))
    return 599, None


def _to_utc(value: Any) -> Optional[datetime]:
    """Parse an RSS date string or epoch seconds into an aware UTC datetime."""
    if value is None or value == "":
        return None
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        d = dtparse.parse(str(value))
        if d.tzinfo is None:
            d = d.replace(tzinfo=timezone.utc)
        return d.astimezone(timezone.utc)
    except (ValueError, OverflowError, TypeError):
        log.debug("timestamp_parse_failed value=%s", value)
        return None


def clean_html_content(text: Optional[str]) -> str:
    """
    Clean HTML content by decoding entities, removing tags, and normalizing whitespace.

    >>> clean_html_content("<p>Breaking: <b>TSLA</b> surges 10%</p>")
    'Breaking: TSLA surges 10%'

    >>> clean_html_content(None)
    ''
    """
    if not text:
        return ""
    decoded = html.unescape(text)
    # Use separator=' ' so adjacent tags do not glue words together.
    soup = BeautifulSoup(decoded, "html.parser")
    text_only = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text_only).strip()


def _build_item(
    source: FeedSource,
    *,
    guid: Optional[str],
    title: str,
    url: str,
    description: str,
    published: Optional[datetime],
    reddit_score: int = 0,
    reddit_comments: int = 0,
) -> Optional[FeedItem]:
    title = clean_html_content(title)
    url = (url or "").strip()
    item_id = (guid or "").strip() or url
    if not title or not item_id:
        return None
    return FeedItem(
        id=item_id,
        title=title,
        url=url,
        published_at=published or datetime.now(timezone.utc),
        source_name=source.name,
        source_category=source.category,
        source_priority=source.priority,
        description=clean_html_content(description),
        reddit_score=reddit_score,
        reddit_comments=reddit_comments,
    )


def _normalize_entry(source: FeedSource, e: Any) -> Optional[FeedItem]:
    published = (
        getattr(e, "published", None)
        or getattr(e, "updated", None)
        or getattr(e, "pubDate", None)
    )
    return _build_item(
        source,
        guid=getattr(e, "id", None) or getattr(e, "guid", None),
        title=getattr(e, "title", None) or "",
        url=getattr(e, "link", None) or "",
        description=(
            getattr(e, "summary", None) or getattr(e, "description", None) or ""
        ),
        published=_to_utc(published),
    )


def parse_rss(source: FeedSource, text: str) -> List[FeedItem]:
    parsed = feedparser.parse(text)
    entries = getattr(parsed, "entries", []) or []
    out = []
    for e in entries:
        it = _normalize_entry(source, e)
        if it:
            out.append(it)
    return out


def parse_reddit_listing(source: FeedSource, text: str) -> List[FeedItem]:
    """Turn a ``/r/<sub>/hot.json`` listing into items.

    Raises ``ValueError`` when the body is not a listing.
    """
    data = json.loads(text)
    try:
        children = data["data"]["children"]
    except (KeyError, TypeError) as err:
        raise ValueError("not a reddit listing") from err
    out = []
    for child in children:
        post = (child or {}).get("data") or {}
        permalink = post.get("permalink") or ""
        url = f"https://www.reddit.com{permalink}" if permalink else post.get("url", "")
        it = _build_item(
            source,
            guid=post.get("name") or post.get("id"),
            title=post.get("title") or "",
            url=url,
            description=post.get("selftext") or "",
            published=_to_utc(post.get("created_utc")),
            reddit_score=int(post.get("score") or 0),
            reddit_comments=int(post.get("num_comments") or 0),
        )
        if it:
            out.append(it)
    return out


async def fetch_source(
    source: FeedSource,
    session: aiohttp.ClientSession,
    cutoff: datetime,
    timeout: int = 12,
) -> Tuple[List[FeedItem], FeedStats]:
    """Fetch and parse one source. Never raises."""
    s: FeedStats = {"ok": 0, "http4": 0, "http5": 0, "errors": 0, "entries": 0, "t_ms": 0.0}
    st = time.time()
    try:
        status, text = await _get_async(source.url, session, timeout=timeout)
        if status != 200 or not text:
            if 400 <= status < 500:
                s["http4"] += 1
            elif 500 <= status < 600 and status != 599:
                s["http5"] += 1
            else:
                s["errors"] += 1
            log.warning(
                "feed_http status=%s source=%s url=%s", status, source.name, source.url
            )
            return [], s

        if source.is_reddit:
            items = parse_reddit_listing(source, text)
        else:
            items = parse_rss(source, text)
        s["entries"] = len(items)
        fresh = [i for i in items if i.published_at >= cutoff]
        s["ok"] += 1
        return fresh, s
    except Exception as e:
        log.warning(
            "feed_fetch_error source=%s err=%s", source.name, e.__class__.__name__
        )
        s["errors"] += 1
        return [], s
    finally:
        s["t_ms"] = round((time.time() - st) * 1000.0, 1)


async def fetch_all(
    sources: Iterable[FeedSource],
    max_age: timedelta = timedelta(days=7),
    timeout: int = 12,
    now: Optional[datetime] = None,
) -> Tuple[List[FeedItem], Dict[str, FeedStats]]:
    """Fetch every source concurrently.

    Returns ``(items, summary_by_source)``; items keep source order.
    """
    sources = list(sources)
    cutoff = (now or datetime.now(timezone.utc)) - max_age
    all_items: List[FeedItem] = []
    summary_by_source: Dict[str, FeedStats] = {}

    session_timeout = aiohttp.ClientTimeout(total=max(30, timeout * 3))
    conn = aiohttp.TCPConnector(limit=10, limit_per_host=3)
    async with aiohttp.ClientSession(timeout=session_timeout, connector=conn) as session:
        results = await asyncio.gather(
            *(fetch_source(src, session, cutoff, timeout=timeout) for src in sources)
        )

    for src, (items, stats) in zip(sources, results):
        all_items.extend(items)
        summary_by_source[src.name] = stats

    failed = sum(1 for st in summary_by_source.values() if not st["ok"])
    log.info(
        "feeds_fetched sources=%d failed=%d items=%d",
        len(sources),
        failed,
        len(all_items),
    )
    return all_items, summary_by_source
