"""Core data types shared across the pipeline.

Everything here is a frozen dataclass: items are built once by the fetcher,
wrapped by the scorer, and replaced (never mutated) when an analysis is
attached.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class Sentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Category(str, Enum):
    EARNINGS = "earnings"
    FED = "fed"
    IPO = "ipo"
    MNA = "m&a"
    CORPORATE = "corporate"
    ECONOMIC = "economic"
    CRYPTO = "crypto"
    ENERGY = "energy"
    TECHNOLOGY = "technology"
    GENERAL = "general"
    REDDIT = "reddit"


PRIORITIES = ("critical", "high", "medium", "low")


@dataclass(frozen=True)
class FeedItem:
    id: str
    title: str
    url: str
    published_at: datetime
    source_name: str
    source_category: str = "general"
    source_priority: str = "medium"
    description: str = ""
    reddit_score: int = 0
    reddit_comments: int = 0

    def __post_init__(self) -> None:
        # Frozen: normalise through object.__setattr__.
        if self.description is None:
            object.__setattr__(self, "description", "")
        if self.published_at.tzinfo is None:
            object.__setattr__(
                self, "published_at", self.published_at.replace(tzinfo=timezone.utc)
            )

    @property
    def text(self) -> str:
        return f"{self.title} {self.description}"

    @property
    def is_reddit(self) -> bool:
        return self.source_category == "reddit"


@dataclass(frozen=True)
class AnalysisResult:
    impact_score: float
    confidence: int
    sentiment: Sentiment
    predicted_movement: str
    time_horizon: str
    affected_sectors: Tuple[str, ...]
    key_stocks: Tuple[str, ...]
    risk_level: str
    recommendation: str
    reasoning: str
    model: str
    key_factors: Tuple[str, ...] = ()
    historical_precedent: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_fallback(self) -> bool:
        return self.model == "fallback"

    def to_dict(self) -> dict:
        return {
            "impactScore": self.impact_score,
            "confidenceLevel": self.confidence,
            "marketSentiment": self.sentiment.value,
            "predictedPriceMovement": self.predicted_movement,
            "timeHorizon": self.time_horizon,
            "affectedSectors": list(self.affected_sectors),
            "keyStocks": list(self.key_stocks),
            "riskLevel": self.risk_level,
            "tradingRecommendation": self.recommendation,
            "reasoning": self.reasoning,
            "keyFactors": list(self.key_factors),
            "historicalPrecedent": self.historical_precedent,
            "model": self.model,
            "analysisTimestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ScoredItem:
    item: FeedItem
    impact_score: int
    sentiment: Sentiment = Sentiment.NEUTRAL
    category: Category = Category.GENERAL
    related_tickers: FrozenSet[str] = frozenset()
    analysis: Optional[AnalysisResult] = None

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def effective_impact(self) -> float:
        """Impact used for presentation: the analysis score when present."""
        if self.analysis is not None:
            return self.analysis.impact_score
        return float(self.impact_score)

    @property
    def effective_sentiment(self) -> Sentiment:
        if self.analysis is not None:
            return self.analysis.sentiment
        return self.sentiment

    def with_analysis(self, analysis: AnalysisResult) -> "ScoredItem":
        return replace(self, analysis=analysis)
