"""Market pulse package.

This package polls financial news RSS feeds and Reddit listings on a timer,
scores every item for market impact, suppresses items it has already alerted
on, optionally enriches the survivors with an LLM analysis and fans alerts
out to email, WhatsApp, Telegram, Discord, Slack and push channels, each
behind its own cooldown.
"""

__all__: list[str] = []
