"""Keyword-based impact scoring.

``score_item`` is a pure function of the item and the tables in
:mod:`market_pulse.keywords`: the same input always produces the same
score, category, sentiment and ticker set.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, List

from . import keywords as kw
from .models import Category, FeedItem, ScoredItem, Sentiment


def calculate_impact_score(item: FeedItem) -> int:
    text = item.text.lower()
    score = 0

    for rule in kw.IMPACT_KEYWORDS:
        if kw.contains(text, rule.term):
            score += rule.weight

    score += kw.TICKER_WEIGHT * len(extract_tickers(item))
    score += kw.URGENCY_WEIGHT * len(kw.matching(text, kw.URGENCY_TERMS))
    score += kw.MOVEMENT_WEIGHT * len(kw.matching(text, kw.MOVEMENT_TERMS))

    if kw.NUMBER_PATTERN.search(text):
        score += kw.NUMBER_BONUS
    if item.source_priority == "high":
        score += kw.PRIORITY_BONUS

    return max(0, min(score, kw.MAX_SCORE))


def extract_tickers(item: FeedItem) -> FrozenSet[str]:
    text = item.text
    return frozenset(
        t for t in kw.TRACKED_TICKERS if kw.ticker_pattern(t).search(text)
    )


def categorize(item: FeedItem) -> Category:
    """First bucket of the ladder with a matching term wins."""
    text = item.text.lower()
    for category in kw.CATEGORY_LADDER:
        if kw.matching(text, kw.CATEGORY_TERMS[category]):
            return category
    return Category.REDDIT if item.is_reddit else Category.GENERAL


def detect_sentiment(item: FeedItem) -> Sentiment:
    text = item.text.lower()
    bull = len(kw.matching(text, kw.BULLISH_TERMS))
    bear = len(kw.matching(text, kw.BEARISH_TERMS))
    if bull > bear:
        return Sentiment.BULLISH
    if bear > bull:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


def score_item(item: FeedItem) -> ScoredItem:
    return ScoredItem(
        item=item,
        impact_score=calculate_impact_score(item),
        sentiment=detect_sentiment(item),
        category=categorize(item),
        related_tickers=extract_tickers(item),
    )


def score_items(items: Iterable[FeedItem]) -> List[ScoredItem]:
    """Score a batch, highest impact first and newest first within a score."""
    scored = [score_item(i) for i in items]
    scored.sort(key=lambda s: (s.impact_score, s.item.published_at), reverse=True)
    return scored
