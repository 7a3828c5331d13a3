"""
Impact analysis
===============

Two analyzers share one contract: ``analyze_item(ScoredItem) -> AnalysisResult``.

- ``ClaudeAnalyzer`` asks Anthropic Claude for a fixed JSON document and
  validates it with pydantic.
- ``FallbackAnalyzer`` applies a keyword heuristic and never fails.

The Claude analyzer degrades to the fallback for any single item whose call
times out, errors or returns something that does not validate. Results only
differ in their ``model`` field. A ``TypeError`` from the client call is not
an oracle failure: it escapes ``analyze_item`` and is logged at error level
by ``batch_analyze`` before that item falls back.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Sequence

from anthropic import AsyncAnthropic
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import keywords as kw
from .config import Settings, get_settings
from .logging_utils import get_logger
from .models import AnalysisResult, ScoredItem, Sentiment

log = get_logger("analysis")

FALLBACK_MODEL = "fallback"

SYSTEM_PROMPT = (
    "You are an expert financial analyst with 20+ years of experience. "
    "Respond ONLY with valid JSON, no additional text."
)

PROMPT_TEMPLATE = """Analyze this financial news and provide a prediction analysis.

NEWS ITEM:
Title: {title}
Content: {content}
Source: {source}
Published: {published}

Return a JSON object with exactly these keys:
{{
  "impactScore": 8.5,
  "confidenceLevel": 85,
  "marketSentiment": "bullish|bearish|neutral",
  "predictedPriceMovement": "+2-5%",
  "timeHorizon": "24-48 hours",
  "affectedSectors": ["technology", "financial"],
  "keyStocks": ["AAPL", "MSFT"],
  "riskLevel": "low|medium|high",
  "tradingRecommendation": "buy|sell|hold|watch",
  "reasoning": "Short explanation of the analysis",
  "keyFactors": ["Factor 1", "Factor 2"],
  "historicalPrecedent": "Similar events in the past caused..."
}}

Guidelines:
- impactScore: 0-10 (10 being most impactful)
- confidenceLevel: 0-100
- Consider both direct and indirect impacts and name the main risks.
"""


class OracleAnalysis(BaseModel):
    """Schema the oracle must return."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    impact_score: float = Field(alias="impactScore", ge=0.0, le=10.0)
    confidence: int = Field(alias="confidenceLevel", ge=0, le=100)
    sentiment: Literal["bullish", "bearish", "neutral"] = Field(alias="marketSentiment")
    predicted_movement: str = Field(default="", alias="predictedPriceMovement")
    time_horizon: str = Field(default="", alias="timeHorizon")
    affected_sectors: List[str] = Field(default_factory=list, alias="affectedSectors")
    key_stocks: List[str] = Field(default_factory=list, alias="keyStocks")
    risk_level: Literal["low", "medium", "high"] = Field(
        default="medium", alias="riskLevel"
    )
    recommendation: Literal["buy", "sell", "hold", "watch"] = Field(
        default="watch", alias="tradingRecommendation"
    )
    reasoning: str = ""
    key_factors: List[str] = Field(default_factory=list, alias="keyFactors")
    historical_precedent: str = Field(default="", alias="historicalPrecedent")

    @field_validator("sentiment", "risk_level", "recommendation", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("key_stocks")
    @classmethod
    def _upper_tickers(cls, v: List[str]) -> List[str]:
        return [s.strip().upper() for s in v if s and s.strip()]

    def to_result(self, model: str) -> AnalysisResult:
        return AnalysisResult(
            impact_score=self.impact_score,
            confidence=self.confidence,
            sentiment=Sentiment(self.sentiment),
            predicted_movement=self.predicted_movement,
            time_horizon=self.time_horizon,
            affected_sectors=tuple(self.affected_sectors),
            key_stocks=tuple(self.key_stocks),
            risk_level=self.risk_level,
            recommendation=self.recommendation,
            reasoning=self.reasoning,
            key_factors=tuple(self.key_factors),
            historical_precedent=self.historical_precedent,
            model=model,
            timestamp=datetime.now(timezone.utc),
        )


_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.I)


def parse_oracle_reply(text: str, model: str) -> AnalysisResult:
    """Validate a raw oracle reply. Raises ``ValueError`` on anything off-schema."""
    body = _FENCE_RE.sub("", (text or "").strip())
    try:
        data = json.loads(body)
    except json.JSONDecodeError as err:
        raise ValueError(f"oracle reply is not JSON: {err.msg}") from err
    if not isinstance(data, dict):
        raise ValueError("oracle reply is not a JSON object")
    try:
        return OracleAnalysis.model_validate(data).to_result(model)
    except ValidationError as err:
        raise ValueError(f"oracle reply failed validation ({err.error_count()} errors)") from err


def fallback_analysis(item: ScoredItem) -> AnalysisResult:
    text = item.item.text.lower()
    impact: float = 5
    sentiment = Sentiment.NEUTRAL
    sectors: tuple = ()
    for rule in kw.FALLBACK_RULES:
        if kw.matching(text, rule.terms):
            impact, sentiment, sectors = rule.impact, rule.sentiment, rule.sectors
            break
    return AnalysisResult(
        impact_score=impact,
        confidence=60,
        sentiment=sentiment,
        predicted_movement="+2-5%" if impact >= 7 else "+1-3%",
        time_horizon="24-48 hours",
        affected_sectors=sectors,
        key_stocks=tuple(sorted(item.related_tickers)),
        risk_level="medium",
        recommendation="watch",
        reasoning="Basic keyword analysis - AI analysis not available",
        key_factors=("News mention", "Market sentiment"),
        historical_precedent="Based on similar news patterns",
        model=FALLBACK_MODEL,
        timestamp=datetime.now(timezone.utc),
    )


class FallbackAnalyzer:
    model = FALLBACK_MODEL

    async def analyze_item(self, item: ScoredItem) -> AnalysisResult:
        return fallback_analysis(item)

    async def batch_analyze(self, items: Sequence[ScoredItem]) -> List[ScoredItem]:
        """Attach an analysis to each item, one at a time. Never raises."""
        out: List[ScoredItem] = []
        for it in items:
            try:
                result = await self.analyze_item(it)
            except Exception as e:
                log.error(
                    "analysis_item_failed id=%s err=%s",
                    it.id,
                    e.__class__.__name__,
                    exc_info=True,
                )
                result = fallback_analysis(it)
            out.append(it.with_analysis(result))
        return out


class ClaudeAnalyzer(FallbackAnalyzer):
    """Anthropic-backed analyzer that falls back per item."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-latest",
        timeout: float = 30.0,
        max_tokens: int = 1000,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.client = client or AsyncAnthropic(api_key=api_key, timeout=timeout)
        log.info("claude_analyzer_initialized model=%s", model)

    def build_prompt(self, item: ScoredItem) -> str:
        it = item.item
        return PROMPT_TEMPLATE.format(
            title=it.title,
            content=it.description or "No content available",
            source=it.source_name,
            published=it.published_at.isoformat(),
        )

    async def _query(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            ),
            timeout=self.timeout,
        )
        text = ""
        if response.content and len(response.content) > 0:
            text = getattr(response.content[0], "text", "") or ""
        return text

    async def analyze_item(self, item: ScoredItem) -> AnalysisResult:
        try:
            text = await self._query(self.build_prompt(item))
            result = parse_oracle_reply(text, self.model)
            log.debug("claude_analysis_ok id=%s impact=%.1f", item.id, result.impact_score)
            return result
        except TypeError:
            # signature mismatch with the client, surfaced by batch_analyze
            raise
        except Exception as e:
            log.warning(
                "claude_analysis_fallback id=%s err=%s", item.id, e.__class__.__name__
            )
            return fallback_analysis(item)


def build_analyzer(settings: Optional[Settings] = None) -> FallbackAnalyzer:
    s = settings or get_settings()
    if s.anthropic_api_key:
        return ClaudeAnalyzer(
            api_key=s.anthropic_api_key,
            model=s.oracle_model,
            timeout=s.oracle_timeout_secs,
            max_tokens=s.oracle_max_tokens,
        )
    log.warning("anthropic_api_key_missing analysis=fallback")
    return FallbackAnalyzer()


def analysis_stats(items: Sequence[ScoredItem]) -> Dict[str, Any]:
    analyses = [i.analysis for i in items if i.analysis is not None]
    n = len(analyses)
    sentiments = Counter(a.sentiment.value for a in analyses)
    sectors: Counter = Counter()
    stocks: Counter = Counter()
    for a in analyses:
        sectors.update(a.affected_sectors)
        stocks.update(a.key_stocks)
    return {
        "total": n,
        "highImpact": sum(1 for a in analyses if a.impact_score >= 7),
        "criticalImpact": sum(1 for a in analyses if a.impact_score >= 8),
        "bullish": sentiments.get("bullish", 0),
        "bearish": sentiments.get("bearish", 0),
        "neutral": sentiments.get("neutral", 0),
        "avgImpactScore": sum(a.impact_score for a in analyses) / n if n else 0.0,
        "avgConfidence": sum(a.confidence for a in analyses) / n if n else 0.0,
        "fallbackCount": sum(1 for a in analyses if a.is_fallback),
        "topSectors": dict(sectors.most_common(5)),
        "topStocks": dict(stocks.most_common(5)),
    }
