from datetime import datetime, timedelta, timezone

import pytest

from market_pulse import channels
from market_pulse.channels import (
    DiscordChannel,
    EmailChannel,
    PushChannel,
    TelegramChannel,
    WhatsAppChannel,
    build_channels,
)
from market_pulse.config import Settings
from market_pulse.scoring import score_item

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeResp:
    def __init__(self, status_code=200, body=None, headers=None):
        self.status_code = status_code
        self._body = body if body is not None else {}
        self.headers = headers or {}
        self.text = str(self._body)

    def json(self):
        return self._body


class FakeHttp:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.responses:
            return self.responses.pop(0)
        return FakeResp(200)


@pytest.fixture
def batch(make_item):
    return [score_item(make_item("BREAKING: Fed rate hike", id="a"))]


def test_send_then_throttled_then_open_again(batch):
    http = FakeHttp()
    ch = DiscordChannel("https://discord.example/hook", timedelta(minutes=10), http)
    assert ch.try_send(batch, T0)
    assert not ch.try_send(batch, T0 + timedelta(minutes=5))
    assert ch.try_send(batch, T0 + timedelta(minutes=10))
    assert len(http.calls) == 2
    url, kwargs = http.calls[0]
    assert url == "https://discord.example/hook"
    assert len(kwargs["json"]["embeds"]) == 1


def test_failed_send_does_not_start_cooldown(batch):
    http = FakeHttp(FakeResp(500, {"error": "down"}))
    ch = DiscordChannel("https://discord.example/hook", timedelta(minutes=10), http)
    assert not ch.try_send(batch, T0)
    assert ch.throttle.last_sent_at is None
    assert ch.try_send(batch, T0 + timedelta(seconds=1))


def test_unconfigured_channel_is_skipped(batch):
    http = FakeHttp()
    ch = TelegramChannel("", "", timedelta(minutes=15), http)
    assert not ch.try_send(batch, T0)
    assert http.calls == []


def test_rate_limited_post_retries_once(monkeypatch, batch):
    sleeps = []
    monkeypatch.setattr(channels.time, "sleep", lambda s: sleeps.append(s))
    http = FakeHttp(FakeResp(429, headers={"Retry-After": "2"}), FakeResp(204))
    ch = DiscordChannel("https://discord.example/hook", timedelta(minutes=10), http)
    assert ch.try_send(batch, T0)
    assert len(http.calls) == 2
    assert sleeps == [2.0]


def test_email_uses_bearer_auth(batch):
    http = FakeHttp(FakeResp(202))
    ch = EmailChannel("SG.key", "me@example.com", "alerts@example.com", timedelta(minutes=30), http)
    assert ch.try_send(batch, T0)
    url, kwargs = http.calls[0]
    assert url == channels.SENDGRID_URL
    assert kwargs["headers"]["Authorization"] == "Bearer SG.key"
    assert kwargs["json"]["personalizations"][0]["to"][0]["email"] == "me@example.com"


def test_whatsapp_addresses_are_prefixed(batch):
    http = FakeHttp(FakeResp(201))
    ch = WhatsAppChannel("AC123", "tok", "+14155238886", "+15550001111", timedelta(minutes=30), http)
    assert ch.try_send(batch, T0)
    url, kwargs = http.calls[0]
    assert "AC123" in url
    assert kwargs["data"]["From"] == "whatsapp:+14155238886"
    assert kwargs["data"]["To"] == "whatsapp:+15550001111"
    assert kwargs["auth"] == ("AC123", "tok")
    assert len(kwargs["data"]["Body"]) <= 1600


def test_push_ticket_error_counts_as_failure(batch):
    http = FakeHttp(FakeResp(200, {"data": {"status": "error", "message": "DeviceNotRegistered"}}))
    ch = PushChannel("ExponentPushToken[abc]", timedelta(minutes=5), http)
    assert not ch.try_send(batch, T0)
    assert ch.throttle.last_sent_at is None


def test_status_reports_cooldown(batch):
    ch = DiscordChannel("https://discord.example/hook", timedelta(minutes=10), FakeHttp())
    ch.try_send(batch, T0)
    st = ch.status(T0 + timedelta(minutes=1))
    assert st == {
        "configured": True,
        "lastSent": T0.isoformat(),
        "canSend": False,
        "cooldownMinutes": 10.0,
    }


def test_build_channels_from_settings():
    chans = build_channels(Settings(discord_webhook_url="https://discord.example/hook"))
    assert [c.channel_id for c in chans] == [
        "email",
        "whatsapp",
        "telegram",
        "discord",
        "slack",
        "push",
    ]
    assert [c.channel_id for c in chans if c.is_configured()] == ["discord"]
    assert chans[0].throttle.cooldown == timedelta(minutes=30)
