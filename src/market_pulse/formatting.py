"""Pure formatters turning a batch of scored items into channel payloads.

Nothing here performs I/O. Each channel calls exactly one of the
``*_payload``/``*_message`` builders per batch.
"""

from __future__ import annotations

import html
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from .models import Category, ScoredItem, Sentiment

WHATSAPP_MAX_CHARS = 1600
TELEGRAM_MAX_CHARS = 4096
DISCORD_MAX_EMBEDS = 10
DISCORD_TITLE_MAX = 256
DISCORD_DESC_MAX = 350
TRUNCATION_MARKER = "\n⚠️ (truncated)"
DISCLAIMER = "⚠️ Not financial advice. Do your own research."

CATEGORY_EMOJI: Dict[Category, str] = {
    Category.EARNINGS: "💰",
    Category.FED: "🏦",
    Category.IPO: "🚀",
    Category.MNA: "🤝",
    Category.CORPORATE: "🏢",
    Category.ECONOMIC: "📊",
    Category.CRYPTO: "₿",
    Category.ENERGY: "⚡",
    Category.TECHNOLOGY: "💻",
    Category.GENERAL: "📰",
    Category.REDDIT: "🔥",
}

SENTIMENT_EMOJI: Dict[Sentiment, str] = {
    Sentiment.BULLISH: "📈",
    Sentiment.BEARISH: "📉",
    Sentiment.NEUTRAL: "➡️",
}


def _truncate(text: str, limit: int, suffix: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - len(suffix))] + suffix


def _clip(text: str, keep: int) -> str:
    return text if len(text) <= keep else text[:keep] + "..."


def utf16_len(text: str) -> int:
    """Length in UTF-16 code units, the unit Twilio counts message bodies in."""
    return len(text.encode("utf-16-le")) // 2


def cap_message(
    text: str, limit: int, measure: Callable[[str], int] = len
) -> str:
    """Cut ``text`` so that it plus the truncation marker fits in ``limit``.

    ``measure`` gives the length of a string in the channel's unit; the
    default counts code points.
    """
    if measure(text) <= limit:
        return text
    budget = limit - measure(TRUNCATION_MARKER)
    used = 0
    cut = 0
    for ch in text:
        used += measure(ch)
        if used > budget:
            break
        cut += 1
    return text[:cut] + TRUNCATION_MARKER


def impact_label(impact: float) -> str:
    if impact >= 8:
        return "🚨 CRITICAL"
    if impact >= 6:
        return "🔥 HIGH IMPACT"
    return "📈 MARKET MOVING"


def short_heading(s: ScoredItem) -> str:
    title = s.item.title
    if len(title) > 60:
        title = title[:57] + "..."
    return " ".join(
        (
            impact_label(s.effective_impact),
            CATEGORY_EMOJI.get(s.category, "📰"),
            SENTIMENT_EMOJI[s.effective_sentiment],
            title,
        )
    )


def _fmt_score(value: float) -> str:
    return f"{value:g}"


def detailed_content(s: ScoredItem) -> str:
    lines = [short_heading(s), ""]
    a = s.analysis
    if a is not None:
        lines += [
            "📊 IMPACT ANALYSIS:",
            f"• Impact Score: {_fmt_score(a.impact_score)}/10",
            f"• Confidence: {a.confidence}%",
            f"• Market Sentiment: {a.sentiment.value.upper()}",
            f"• Expected Movement: {a.predicted_movement}",
            f"• Time Horizon: {a.time_horizon}",
            "",
            "🎯 KEY INSIGHTS:",
            a.reasoning,
        ]
        if a.affected_sectors:
            lines += ["", "📈 AFFECTED SECTORS:"] + [f"• {x}" for x in a.affected_sectors]
        if a.key_stocks:
            lines += ["", "🏢 KEY STOCKS:"] + [f"• {x}" for x in a.key_stocks]
        lines += [
            "",
            "💡 TRADING RECOMMENDATION:",
            f"{a.recommendation.upper()} - {a.risk_level} risk",
        ]
        if a.key_factors:
            lines += ["", "⚠️ RISK FACTORS:"] + [f"• {x}" for x in a.key_factors]
    else:
        lines.append(f"Impact Score: {s.impact_score}/10")
    lines += ["", f"🔗 Read more: {s.item.url}"]
    return "\n".join(lines)


def _split(batch: Sequence[ScoredItem]):
    news = [s for s in batch if not s.item.is_reddit]
    reddit = [s for s in batch if s.item.is_reddit]
    return news, reddit


def _now_str(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M UTC")


# ---------------------------------------------------------------- email


def email_subject(batch: Sequence[ScoredItem]) -> str:
    return f"🚨 Market Alert: {len(batch)} High-Impact News Items"


def _impact_class(impact: float) -> str:
    if impact >= 8:
        return "impact-high"
    if impact >= 6:
        return "impact-medium"
    return "impact-low"


def email_html(batch: Sequence[ScoredItem], now: Optional[datetime] = None) -> str:
    e = html.escape
    news, reddit = _split(batch)
    sources = sorted({s.item.source_name for s in batch})
    parts: List[str] = [
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><style>",
        "body{font-family:Arial,sans-serif;line-height:1.6;color:#333}",
        ".item{background:#f8f9fa;border-left:4px solid #667eea;margin:20px 0;padding:16px}",
        ".impact-high{color:#ff4444}.impact-medium{color:#ff8800}.impact-low{color:#00aa00}",
        "</style></head><body>",
        f"<h1>🚨 Market Alert</h1><p>{len(batch)} high-impact stories "
        f"({len(news)} news + {len(reddit)} Reddit) detected {e(_now_str(now))}</p>",
        f"<p><strong>Sources:</strong> {e(', '.join(sources))}</p>",
    ]
    for s in batch:
        it = s.item
        parts.append("<div class=\"item\">")
        parts.append(f"<h3>{e(short_heading(s))}</h3>")
        parts.append(
            f"<p><strong>Source:</strong> {e(it.source_name)} | "
            f"<strong>Published:</strong> {e(it.published_at.strftime('%Y-%m-%d %H:%M UTC'))} | "
            f"<span class=\"{_impact_class(s.effective_impact)}\">"
            f"Impact: {_fmt_score(s.effective_impact)}/10</span></p>"
        )
        if it.description:
            parts.append(f"<p>{e(_truncate(it.description, 500))}</p>")
        a = s.analysis
        if a is not None:
            parts.append(
                "<div><h4>🤖 Analysis</h4>"
                f"<p><strong>Sentiment:</strong> {e(a.sentiment.value)}</p>"
                f"<p><strong>Expected Movement:</strong> {e(a.predicted_movement)}</p>"
                f"<p><strong>Time Horizon:</strong> {e(a.time_horizon)}</p>"
                f"<p><strong>Affected Sectors:</strong> {e(', '.join(a.affected_sectors))}</p>"
                f"<p><strong>Key Stocks:</strong> {e(', '.join(a.key_stocks))}</p>"
                "</div>"
            )
        if it.url:
            parts.append(f"<p><a href=\"{e(it.url, quote=True)}\">Read more</a></p>")
        parts.append("</div>")
    parts.append(
        "<p><em>⚠️ Disclaimer: This is for informational purposes only and not "
        "financial advice.</em></p></body></html>"
    )
    return "".join(parts)


# ---------------------------------------------------------------- chat


def whatsapp_message(batch: Sequence[ScoredItem], now: Optional[datetime] = None) -> str:
    news, reddit = _split(batch)
    msg = "🚨 *MARKET ALERT* 🚨\n"
    msg += f"📊 {len(batch)} Stories | ⏰ {_now_str(now)}\n\n"
    if news:
        msg += f"📰 *Top News ({len(news)}):*\n"
        for i, s in enumerate(news[:2], 1):
            msg += f"{i}. {_clip(s.item.title, 70)}\n   {s.item.source_name}\n\n"
        if len(news) > 2:
            msg += f"+{len(news) - 2} more news\n\n"
    if reddit:
        msg += f"🔥 *Reddit Hot ({len(reddit)}):*\n"
        for i, s in enumerate(reddit[:1], 1):
            msg += (
                f"{i}. {_clip(s.item.title, 70)}\n"
                f"   {s.item.source_name} ({s.item.reddit_score}↑)\n\n"
            )
        if len(reddit) > 1:
            msg += f"+{len(reddit) - 1} more Reddit\n\n"
    msg += DISCLAIMER
    return cap_message(msg, WHATSAPP_MAX_CHARS, measure=utf16_len)


def _telegram_block(s: ScoredItem) -> str:
    heading = html.escape(short_heading(s))
    if not s.item.url:
        return f"{heading}\n\n"
    link = html.escape(s.item.url, quote=True)
    return f"{heading}\n<a href=\"{link}\">{html.escape(s.item.source_name)}</a>\n\n"


def telegram_message(batch: Sequence[ScoredItem]) -> str:
    """HTML message for the Bot API.

    When the batch does not fit, whole item blocks are dropped from the end
    so no tag is ever cut, and the truncation marker is appended.
    """
    head = f"<b>🚨 {len(batch)} high-impact market stories</b>\n\n"
    foot = html.escape(DISCLAIMER)
    blocks = [_telegram_block(s) for s in batch]
    text = head + "".join(blocks) + foot
    if utf16_len(text) <= TELEGRAM_MAX_CHARS:
        return text

    budget = TELEGRAM_MAX_CHARS - utf16_len(head + foot + TRUNCATION_MARKER)
    kept: List[str] = []
    for block in blocks:
        size = utf16_len(block)
        if size > budget:
            break
        kept.append(block)
        budget -= size
    return head + "".join(kept) + foot + TRUNCATION_MARKER


def discord_color(impact: float) -> int:
    if impact >= 8:
        return 0xFF0000
    if impact >= 6:
        return 0xFF8800
    return 0x00FF00


def discord_embeds(batch: Sequence[ScoredItem]) -> List[Dict[str, Any]]:
    embeds: List[Dict[str, Any]] = []
    for s in batch[:DISCORD_MAX_EMBEDS]:
        embed: Dict[str, Any] = {
            "title": _truncate(short_heading(s), DISCORD_TITLE_MAX),
            "description": _truncate(
                s.item.description or "No description available", DISCORD_DESC_MAX
            ),
            "color": discord_color(s.effective_impact),
            "fields": [
                {"name": "Impact Score", "value": f"{_fmt_score(s.effective_impact)}/10", "inline": True},
                {"name": "Market Sentiment", "value": s.effective_sentiment.value, "inline": True},
                {"name": "Source", "value": s.item.source_name or "unknown", "inline": True},
            ],
            "timestamp": s.item.published_at.isoformat(),
        }
        if s.item.url:
            embed["url"] = s.item.url
        embeds.append(embed)
    return embeds


def discord_payload(batch: Sequence[ScoredItem]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"embeds": discord_embeds(batch)}
    extra = len(batch) - DISCORD_MAX_EMBEDS
    if extra > 0:
        payload["content"] = f"+{extra} more high-impact items not shown"
    return payload


def slack_color(impact: float) -> str:
    if impact >= 8:
        return "danger"
    if impact >= 6:
        return "warning"
    return "good"


def slack_payload(batch: Sequence[ScoredItem]) -> Dict[str, Any]:
    attachments = []
    for s in batch:
        att: Dict[str, Any] = {
            "color": slack_color(s.effective_impact),
            "title": short_heading(s),
            "fields": [
                {"title": "Impact Score", "value": f"{_fmt_score(s.effective_impact)}/10", "short": True},
                {"title": "Market Sentiment", "value": s.effective_sentiment.value, "short": True},
                {"title": "Source", "value": s.item.source_name, "short": True},
            ],
        }
        if s.item.url:
            att["title_link"] = s.item.url
            att["actions"] = [{"type": "button", "text": "Read More", "url": s.item.url}]
        attachments.append(att)
    return {
        "text": f"🚨 {len(batch)} high-impact market stories",
        "attachments": attachments,
    }


def push_payload(batch: Sequence[ScoredItem], token: str) -> Dict[str, Any]:
    top = max(batch, key=lambda s: s.effective_impact)
    body = top.item.description or "High-impact financial news detected"
    if len(batch) > 1:
        body = f"{_truncate(body, 120)} (+{len(batch) - 1} more)"
    return {
        "to": token,
        "title": short_heading(top),
        "body": _truncate(body, 178),
        "data": {
            "url": top.item.url,
            "impactScore": top.effective_impact,
            "sentiment": top.effective_sentiment.value,
            "count": len(batch),
        },
    }


def console_text(batch: Sequence[ScoredItem]) -> str:
    rule = "=" * 80
    lines = [rule, "🚨 MARKET PULSE ALERT", f"📊 {len(batch)} High-Impact News Items Detected", rule]
    for i, s in enumerate(batch, 1):
        lines.append(f"{i}. 📰 Source: {s.item.source_name}")
        lines += [f"   {ln}" if ln else "" for ln in detailed_content(s).split("\n")]
        lines.append("")
    lines += [rule, "⚠️  This is for informational purposes only and not financial advice.", rule]
    return "\n".join(lines)
