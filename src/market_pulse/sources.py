"""Static registry of feed sources.

``SOURCES`` is loaded once at import and never mutated. Operators can drop
sources with ``SKIP_SOURCES`` or repoint one with ``FEED_URL_OVERRIDES``;
both are applied by :func:`active_sources`, which returns a fresh tuple.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .config import Settings, get_settings


@dataclass(frozen=True)
class FeedSource:
    """One registry entry.

    ``impact_keywords`` is descriptor data: the terms the source is known
    for, kept alongside the URL for operators. Scoring never reads it; every
    item is scored against the shared tables in :mod:`market_pulse.keywords`.
    """

    name: str
    url: str
    category: str
    priority: str = "medium"
    impact_keywords: Tuple[str, ...] = ()
    is_reddit: bool = False
    subreddit: Optional[str] = None


def _reddit(name: str, sub: str, keywords: Tuple[str, ...]) -> FeedSource:
    return FeedSource(
        name=name,
        url=f"https://www.reddit.com/r/{sub}/hot.json",
        category="reddit",
        priority="high",
        impact_keywords=keywords,
        is_reddit=True,
        subreddit=sub,
    )


_BREAKING = ("breaking", "alert", "urgent", "crisis", "emergency")

SOURCES: Tuple[FeedSource, ...] = (
    # Major financial news
    FeedSource("MarketWatch", "https://feeds.marketwatch.com/marketwatch/topstories/", "financial", "high", ("earnings", "fed", "rate", "inflation", "gdp", "unemployment")),
    FeedSource("CNBC Business", "https://search.cnbc.com/rs/search/combinedcms/view.xml?partnerId=wrss01&id=100003114", "financial", "high", ("breaking", "alert", "surge", "plunge", "rally", "crash")),
    FeedSource("Bloomberg Markets", "https://feeds.bloomberg.com/markets/news.rss", "financial", "high", ("fed", "treasury", "bond", "yield", "inflation", "gdp")),
    FeedSource("Wall Street Journal", "https://feeds.a.dj.com/rss/RSSMarketsMain.xml", "financial", "high", ("earnings", "ipo", "merger", "acquisition", "dividend")),
    FeedSource("Financial Times", "https://www.ft.com/rss/home", "financial", "medium", ("central bank", "monetary policy", "fiscal", "trade")),
    FeedSource("Reuters Business", "https://feeds.reuters.com/reuters/businessNews", "financial", "high", ("earnings", "fed", "rate", "inflation", "gdp")),
    FeedSource("Yahoo Finance", "https://feeds.finance.yahoo.com/rss/2.0/headline", "financial", "medium", ("stock", "market", "trading", "volume", "price")),
    FeedSource("Benzinga", "https://www.benzinga.com/feeds/news", "financial", "high", ("breaking", "alert", "earnings", "merger", "acquisition")),
    FeedSource("MarketWatch Breaking", "https://feeds.marketwatch.com/marketwatch/marketpulse/", "financial", "high", _BREAKING),
    FeedSource("CNBC Breaking News", "https://search.cnbc.com/rs/search/combinedcms/view.xml?partnerId=wrss01&id=100727362", "financial", "high", _BREAKING),
    FeedSource("BBC Business", "http://feeds.bbci.co.uk/news/business/rss.xml", "financial", "medium", ("earnings", "market", "economy", "business")),
    FeedSource("CNN Business", "http://rss.cnn.com/rss/money_latest.rss", "financial", "medium", ("market", "economy", "business", "stocks")),
    FeedSource("Forbes Business", "https://www.forbes.com/business/feed/", "financial", "medium", ("business", "market", "economy", "stocks")),
    FeedSource("Business Insider", "https://feeds.businessinsider.com/custom/all", "financial", "medium", ("business", "market", "economy", "stocks")),
    FeedSource("Fortune", "https://fortune.com/feed/", "financial", "medium", ("business", "market", "economy", "stocks")),
    # Analysis
    FeedSource("Seeking Alpha", "https://seekingalpha.com/feed.xml", "analysis", "medium", ("analysis", "outlook", "forecast", "target", "rating")),
    FeedSource("InvestorPlace", "https://investorplace.com/feed/", "analysis", "medium", ("stock", "analysis", "forecast", "target", "rating")),
    FeedSource("Motley Fool", "https://www.fool.com/feeds/index.aspx", "analysis", "medium", ("stock", "analysis", "investment", "outlook")),
    FeedSource("Zacks Investment Research", "https://www.zacks.com/rss/stock_news.php", "analysis", "medium", ("earnings", "analysis", "rating", "upgrade", "downgrade")),
    FeedSource("Barrons", "https://feeds.a.dj.com/rss/RSSOpinion.xml", "analysis", "medium", ("analysis", "opinion", "market", "stocks")),
    FeedSource("Kiplinger", "https://www.kiplinger.com/rss", "analysis", "low", ("personal finance", "investment", "retirement")),
    FeedSource("Money", "https://money.com/feed/", "analysis", "low", ("personal finance", "investment", "money")),
    FeedSource("MarketWatch Personal Finance", "https://feeds.marketwatch.com/marketwatch/personal-finance/", "analysis", "low", ("personal finance", "investment", "retirement")),
    FeedSource("CNBC Personal Finance", "https://search.cnbc.com/rs/search/combinedcms/view.xml?partnerId=wrss01&id=100646281", "analysis", "low", ("personal finance", "investment", "retirement")),
    # Sector
    FeedSource("TechCrunch", "https://techcrunch.com/feed/", "technology", "medium", ("ipo", "funding", "acquisition", "startup", "tech")),
    FeedSource("Healthcare Finance", "https://www.healthcarefinancenews.com/rss.xml", "healthcare", "medium", ("fda", "approval", "drug", "biotech", "pharma")),
    FeedSource("Energy News", "https://www.energynews.com/feed/", "energy", "medium", ("oil", "gas", "energy", "renewable", "solar", "wind")),
    FeedSource("Oil Price", "https://oilprice.com/rss/main", "energy", "medium", ("oil", "gas", "energy", "crude")),
    FeedSource("Rigzone", "https://www.rigzone.com/rss/", "energy", "medium", ("oil", "gas", "energy", "drilling")),
    FeedSource("Kitco News", "https://www.kitco.com/rss/", "commodities", "medium", ("gold", "silver", "precious metals", "commodities")),
    FeedSource("Real Estate News", "https://www.realestatenews.com/feed/", "real-estate", "low", ("real estate", "housing", "mortgage", "property")),
    FeedSource("Housing Wire", "https://www.housingwire.com/feed/", "real-estate", "low", ("real estate", "housing", "mortgage", "property")),
    # Crypto
    FeedSource("CoinDesk", "https://coindesk.com/arc/outboundfeeds/rss/", "crypto", "medium", ("bitcoin", "crypto", "blockchain", "ethereum", "defi")),
    FeedSource("CoinTelegraph", "https://cointelegraph.com/rss", "crypto", "medium", ("bitcoin", "crypto", "blockchain", "ethereum", "defi")),
    # Reddit JSON listings
    _reddit("Reddit Business", "business", ("business", "finance", "economy", "market", "stock", "investment")),
    _reddit("Reddit Economics", "economics", ("economics", "economy", "fed", "inflation", "gdp", "unemployment", "policy")),
    _reddit("Reddit Finance", "finance", ("finance", "banking", "credit", "loan", "mortgage", "investment", "trading")),
    # Business
    FeedSource("Fast Company", "https://www.fastcompany.com/feed", "business", "low", ("business", "innovation", "startup", "tech")),
    FeedSource("Inc.com", "https://www.inc.com/rss.xml", "business", "low", ("business", "startup", "entrepreneur", "small business")),
    FeedSource("Entrepreneur", "https://www.entrepreneur.com/latest.rss", "business", "low", ("business", "startup", "entrepreneur", "small business")),
    # International
    FeedSource("Financial Post", "https://financialpost.com/feed", "financial", "medium", ("canada", "market", "economy", "business")),
    FeedSource("Globe and Mail Business", "https://www.theglobeandmail.com/business/rss.xml", "financial", "medium", ("canada", "market", "economy", "business")),
    FeedSource("Australian Financial Review", "https://www.afr.com/rss.xml", "financial", "medium", ("australia", "market", "economy", "business")),
    FeedSource("Financial Times Asia", "https://www.ft.com/asia-pacific?format=rss", "financial", "medium", ("asia", "market", "economy", "business")),
    FeedSource("Nikkei Asia", "https://asia.nikkei.com/rss", "financial", "medium", ("asia", "japan", "market", "economy")),
    FeedSource("South China Morning Post", "https://www.scmp.com/rss/91/feed", "financial", "medium", ("china", "asia", "market", "economy")),
    # Banking / fintech / insurance
    FeedSource("American Banker", "https://www.americanbanker.com/rss", "banking", "medium", ("banking", "finance", "credit", "loans")),
    FeedSource("Banking Dive", "https://www.bankingdive.com/feeds/", "banking", "medium", ("banking", "finance", "credit", "loans")),
    FeedSource("Credit Union Times", "https://www.cutimes.com/rss", "banking", "low", ("credit union", "banking", "finance")),
    FeedSource("Payments Source", "https://www.paymentssource.com/rss", "fintech", "medium", ("payments", "fintech", "digital", "mobile")),
    FeedSource("Finextra", "https://www.finextra.com/rss", "fintech", "medium", ("fintech", "payments", "digital", "banking")),
    FeedSource("Insurance Journal", "https://www.insurancejournal.com/rss/", "insurance", "low", ("insurance", "risk", "claims", "coverage")),
    FeedSource("Risk Management", "https://www.riskmanagementmonitor.com/feed/", "insurance", "low", ("risk", "insurance", "compliance", "security")),
    # Regulators
    FeedSource("SEC News", "https://www.sec.gov/news/rss", "regulatory", "high", ("sec", "regulation", "enforcement", "compliance")),
    FeedSource("Federal Reserve News", "https://www.federalreserve.gov/feeds/press_all.xml", "regulatory", "high", ("fed", "federal reserve", "monetary policy", "interest rates")),
    FeedSource("CFTC News", "https://www.cftc.gov/feeds/press", "regulatory", "medium", ("cftc", "commodities", "futures", "regulation")),
    FeedSource("FDIC News", "https://www.fdic.gov/news/rss/", "regulatory", "medium", ("fdic", "banking", "deposits", "regulation")),
    # Economic data
    FeedSource("Bureau of Labor Statistics", "https://www.bls.gov/feed/", "economic", "high", ("employment", "unemployment", "inflation", "economic data")),
    FeedSource("Bureau of Economic Analysis", "https://www.bea.gov/feed/", "economic", "high", ("gdp", "economic growth", "economic data", "statistics")),
    FeedSource("Federal Reserve Economic Data", "https://fred.stlouisfed.org/rss/", "economic", "high", ("economic data", "statistics", "fed", "economy")),
    FeedSource("World Bank News", "https://www.worldbank.org/en/news/rss", "economic", "medium", ("world bank", "global economy", "development", "economic")),
    FeedSource("IMF News", "https://www.imf.org/en/news/rss", "economic", "medium", ("imf", "global economy", "monetary", "economic")),
)  # fmt: skip


def active_sources(settings: Optional[Settings] = None) -> Tuple[FeedSource, ...]:
    """Return the registry minus skipped sources, with URL overrides applied."""
    s = settings or get_settings()
    skip = {name.lower() for name in s.skip_sources}
    out = []
    for src in SOURCES:
        key = src.name.lower()
        if key in skip:
            continue
        override = s.feed_url_overrides.get(key)
        out.append(replace(src, url=override) if override else src)
    return tuple(out)
