# Shared fixtures. Every test starts from an environment with no channel,
# oracle or Reddit credentials so nothing reaches a real endpoint.
from datetime import datetime, timezone

import pytest

from market_pulse.models import FeedItem

_CREDENTIAL_VARS = (
    "SENDGRID_API_KEY",
    "SENDGRID_FROM_EMAIL",
    "ALERT_EMAIL_ADDRESS",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "ALERT_PHONE_NUMBER",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "DISCORD_WEBHOOK_URL",
    "SLACK_WEBHOOK_URL",
    "PUSH_NOTIFICATION_KEY",
    "ANTHROPIC_API_KEY",
    "REDDIT_CLIENT_ID",
    "REDDIT_CLIENT_SECRET",
    "REDDIT_USERNAME",
    "REDDIT_PASSWORD",
    "SKIP_SOURCES",
    "FEED_URL_OVERRIDES",
    "MIN_IMPACT_SCORE",
    "LOG_DIR",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def make_item():
    """Factory for FeedItems with sensible defaults."""

    def _make(
        title="Company reports quarterly results",
        *,
        id=None,
        description="",
        source_name="Test Wire",
        source_category="financial",
        source_priority="medium",
        published_at=None,
        url=None,
        reddit_score=0,
        reddit_comments=0,
    ):
        item_id = id or f"id-{abs(hash(title))}"
        return FeedItem(
            id=item_id,
            title=title,
            url=url if url is not None else f"https://news.example/{item_id}",
            published_at=published_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            source_name=source_name,
            source_category=source_category,
            source_priority=source_priority,
            description=description,
            reddit_score=reddit_score,
            reddit_comments=reddit_comments,
        )

    return _make
