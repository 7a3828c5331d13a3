"""Canonical keyword tables.

Scoring, categorisation, the Reddit engagement filter and the fallback
analyzer all read from this module so the term lists cannot drift apart.
The tables are tuples and frozen dataclasses built once at import.

Matching is whole-word: ``ai`` does not hit "said" and ``oil`` does not hit
"turmoil". A trailing ``s``/``es`` is tolerated so "surges" counts as "surge".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, Pattern, Tuple

from .models import Category, Sentiment

CRITICAL_WEIGHT = 3
DEFAULT_WEIGHT = 2
TICKER_WEIGHT = 2
URGENCY_WEIGHT = 3
MOVEMENT_WEIGHT = 2
NUMBER_BONUS = 1
PRIORITY_BONUS = 1
MAX_SCORE = 10


@dataclass(frozen=True)
class KeywordRule:
    term: str
    weight: int


def _rule(term: str) -> KeywordRule:
    # "fed" and "earnings" terms are the market movers; everything else is 2.
    weight = (
        CRITICAL_WEIGHT if ("fed" in term or "earnings" in term) else DEFAULT_WEIGHT
    )
    return KeywordRule(term, weight)


# Terms overlapping the urgency and movement lists below are intentional:
# "breaking" earns both its keyword weight and the urgency bonus.
_IMPACT_TERMS: Tuple[str, ...] = (
    # critical financial events
    "takeover", "take over", "hostile takeover", "friendly takeover", "leveraged buyout", "lbo",
    "acquisition", "acquire", "acquired", "acquiring", "acquirer", "target company",
    "merger", "merge", "merged", "merging", "merger agreement", "merger deal",
    "investment", "invest", "invested", "investing", "investor", "investment deal",
    "earnings", "earnings report", "quarterly earnings", "annual earnings", "earnings beat", "earnings miss",
    "earnings surprise", "earnings guidance", "earnings forecast", "earnings estimate",
    "loss", "losses", "net loss", "quarterly loss", "annual loss", "operating loss",
    "revenue", "revenue growth", "revenue decline", "quarterly revenue", "annual revenue",
    "profit", "profits", "net profit", "quarterly profit", "annual profit", "operating profit",
    # corporate actions
    "ipo", "initial public offering", "going public", "public offering", "secondary offering",
    "dividend", "dividend increase", "dividend cut", "dividend suspension", "special dividend",
    "stock split", "reverse split", "stock buyback", "share buyback", "repurchase",
    "spin-off", "spinoff", "divestiture", "asset sale", "business sale",
    "partnership", "strategic partnership", "joint venture", "alliance", "collaboration",
    "funding", "funding round", "series a", "series b", "series c", "venture capital",
    "private equity", "hedge fund", "institutional investor", "activist investor",
    # executives and governance
    "ceo", "chief executive", "ceo resignation", "ceo departure", "ceo appointment",
    "cfo", "chief financial officer", "cfo resignation", "cfo departure", "cfo appointment",
    "cto", "chief technology officer", "cto resignation", "cto departure", "cto appointment",
    "board", "board member", "board resignation", "board appointment", "board shakeup",
    "executive", "executive departure", "executive appointment", "leadership change",
    "management", "management change", "management shakeup", "management restructuring",
    # regulatory and legal
    "sec", "securities and exchange commission", "sec investigation", "sec filing",
    "sec enforcement", "sec settlement", "sec fine", "sec penalty",
    "regulatory", "regulatory action", "regulatory approval", "regulatory investigation",
    "lawsuit", "class action", "legal action", "litigation", "settlement",
    "fraud", "accounting fraud", "financial fraud", "securities fraud",
    "audit", "audit issues", "audit findings", "audit problems", "audit failure",
    "material weakness", "going concern", "delisting", "trading halt", "trading suspension",
    # distress and restructuring
    "bankruptcy", "chapter 11", "chapter 7", "liquidation", "restructuring",
    "debt restructuring", "debt refinancing", "debt default", "debt crisis",
    "liquidity", "liquidity crisis", "liquidity problems", "cash flow problems",
    "layoffs", "job cuts", "workforce reduction", "headcount reduction",
    "cost cutting", "expense reduction", "operational efficiency", "restructuring plan",
    # market movements and volatility
    "surge", "plunge", "rally", "crash", "spike", "drop", "jump", "fall",
    "volatility", "market volatility", "price volatility", "trading volume",
    "market crash", "flash crash", "circuit breaker", "bear market", "bull market",
    "panic selling", "margin call", "forced liquidation", "fire sale",
    "distressed assets", "distressed sale", "distressed company",
    # economy and policy
    "fed", "federal reserve", "interest rate", "rate cut", "rate hike", "rate decision",
    "inflation", "deflation", "stagflation", "inflation data", "cpi", "ppi",
    "gdp", "gdp growth", "gdp contraction", "economic growth", "economic decline",
    "unemployment", "jobless claims", "employment data", "labor market",
    "central bank", "monetary policy", "fiscal policy", "quantitative easing", "tapering",
    "trade war", "tariff", "tariffs", "sanctions", "trade agreement", "trade deal",
    # sectors
    "fda", "fda approval", "fda rejection", "drug approval", "drug trial", "clinical trial",
    "vaccine", "medical breakthrough", "pharmaceutical", "biotech", "healthcare",
    "oil", "oil price", "crude oil", "energy", "natural gas", "renewable energy",
    "bitcoin", "crypto", "cryptocurrency", "blockchain", "digital currency",
    "artificial intelligence", "ai", "machine learning", "quantum computing",
    "autonomous vehicles", "electric vehicles", "tesla", "space exploration",
    # breaking news
    "breaking", "alert", "urgent", "immediate", "crisis", "emergency", "developing",
    "just in", "latest", "update", "exclusive", "sources say", "according to sources",
    # performance indicators
    "beat", "miss", "exceed", "fall short", "outperform", "underperform",
    "guidance", "forecast", "outlook", "projection", "estimate", "consensus",
    "upgrade", "downgrade", "rating change", "price target", "analyst rating",
    "margin", "gross margin", "operating margin", "net margin", "profit margin",
    "cash", "cash position", "cash flow", "free cash flow", "operating cash flow",
    "debt", "debt level", "debt ratio", "leverage", "debt to equity",
    # sentiment and outlook
    "bullish", "bearish", "neutral", "optimistic", "pessimistic", "cautious",
    "recession", "recovery", "growth", "decline", "expansion", "contraction",
    "prediction", "expectation", "anticipation",
    "risk", "risk assessment", "risk management", "uncertainty",
    # named companies
    "amazon", "apple", "microsoft", "google", "alphabet", "meta", "facebook",
    "nvidia", "netflix", "amd", "intel", "oracle", "salesforce", "adobe",
    "jpmorgan", "bank of america", "wells fargo", "goldman sachs", "morgan stanley",
    "walmart", "target", "costco", "home depot", "lowes", "mcdonalds", "starbucks",
    "exxon", "chevron", "conocophillips", "schlumberger", "occidental petroleum",
    # reddit chatter
    "viral", "trending", "hot", "front page", "top post", "highly upvoted",
    "breaking news", "urgent update", "market alert",
    "reddit gold", "awarded", "gilded", "platinum", "silver award",
    "community choice", "moderator approved", "verified", "confirmed",
    "live discussion", "mega thread", "sticky post", "announcement",
)  # fmt: skip

IMPACT_KEYWORDS: Tuple[KeywordRule, ...] = tuple(
    _rule(t) for t in dict.fromkeys(_IMPACT_TERMS)
)

CATEGORY_LADDER: Tuple[Category, ...] = (
    Category.EARNINGS,
    Category.FED,
    Category.IPO,
    Category.MNA,
    Category.CORPORATE,
    Category.ECONOMIC,
    Category.CRYPTO,
    Category.ENERGY,
    Category.TECHNOLOGY,
)

# Bucket terms, checked in ladder order. Independent of the impact weights.
CATEGORY_TERMS: Dict[Category, Tuple[str, ...]] = {
    Category.EARNINGS: ("earnings", "quarterly", "revenue"),
    Category.FED: ("fed", "federal reserve", "interest rate"),
    Category.IPO: ("ipo", "initial public offering"),
    Category.MNA: ("merger", "acquisition", "deal"),
    Category.CORPORATE: ("dividend", "buyback", "split"),
    Category.ECONOMIC: ("inflation", "gdp", "unemployment"),
    Category.CRYPTO: ("crypto", "cryptocurrency", "bitcoin", "blockchain"),
    Category.ENERGY: ("oil", "energy", "gas"),
    Category.TECHNOLOGY: ("tech", "technology", "ai", "software"),
}

URGENCY_TERMS: Tuple[str, ...] = (
    "breaking",
    "urgent",
    "alert",
    "immediate",
    "now",
    "today",
)

MOVEMENT_TERMS: Tuple[str, ...] = (
    "surge",
    "plunge",
    "rally",
    "crash",
    "spike",
    "drop",
    "jump",
    "fall",
)

TRACKED_TICKERS: Tuple[str, ...] = (
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA", "NFLX", "AMD", "INTC",
    "JPM", "BAC", "WFC", "GS", "MS", "C", "JNJ", "PG", "KO", "PEP",
    "SPY", "QQQ", "IWM", "VTI", "VOO", "ARKK", "TQQQ", "SQQQ",
)  # fmt: skip

BULLISH_TERMS: Tuple[str, ...] = (
    "surge",
    "rally",
    "jump",
    "soar",
    "gain",
    "beat",
    "upgrade",
    "record high",
    "bullish",
    "outperform",
    "rebound",
    "growth",
)

BEARISH_TERMS: Tuple[str, ...] = (
    "plunge",
    "crash",
    "drop",
    "fall",
    "slump",
    "miss",
    "downgrade",
    "loss",
    "bearish",
    "layoff",
    "bankruptcy",
    "recession",
    "fraud",
)

# Retail-chatter phrases that only count toward the Reddit engagement filter.
REDDIT_SIGNAL_TERMS: Tuple[str, ...] = (
    "yolo",
    "short squeeze",
    "gamma squeeze",
    "to the moon",
    "diamond hands",
    "buy the dip",
    "pump and dump",
    "margin call",
    "tendies",
)


@dataclass(frozen=True)
class FallbackRule:
    terms: Tuple[str, ...]
    impact: float
    sentiment: Sentiment
    sectors: Tuple[str, ...]


# First match wins, same as the category ladder.
FALLBACK_RULES: Tuple[FallbackRule, ...] = (
    FallbackRule(
        ("fed", "federal reserve"),
        8,
        Sentiment.BEARISH,
        ("financial", "real estate", "utilities"),
    ),
    FallbackRule(("earnings",), 7, Sentiment.BULLISH, ("technology", "consumer")),
    FallbackRule(
        ("merger", "acquisition"),
        9,
        Sentiment.BULLISH,
        ("target company", "acquirer"),
    ),
    FallbackRule(
        ("crypto", "bitcoin"),
        6,
        Sentiment.BULLISH,
        ("cryptocurrency", "technology"),
    ),
)

NUMBER_PATTERN: Pattern[str] = re.compile(r"(\d+\.?\d*%|\$\d+\.?\d*[bmk]?)", re.I)


@lru_cache(maxsize=None)
def term_pattern(term: str) -> Pattern[str]:
    """Whole-word, case-insensitive pattern for ``term`` with an optional plural."""
    return re.compile(
        r"(?<![a-z0-9])" + re.escape(term.lower()) + r"(?:s|es)?(?![a-z0-9])",
        re.I,
    )


@lru_cache(maxsize=None)
def ticker_pattern(ticker: str) -> Pattern[str]:
    """Case-sensitive ticker token; one-letter symbols need a ``$`` cashtag."""
    prefix = r"\$" if len(ticker) == 1 else r"\$?"
    return re.compile(r"(?<![A-Za-z0-9$])" + prefix + re.escape(ticker) + r"(?![A-Za-z0-9])")


def contains(text: str, term: str) -> bool:
    return term_pattern(term).search(text) is not None


def matching(text: str, terms: Iterable[str]) -> Tuple[str, ...]:
    return tuple(t for t in terms if contains(text, t))
