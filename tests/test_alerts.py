from datetime import datetime, timedelta, timezone

import pytest

from market_pulse.alerts import AlertDispatcher, console_alert
from market_pulse.channels import Channel, TransportError
from market_pulse.scoring import score_item

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeChannel(Channel):
    def __init__(self, channel_id, ok=True, configured=True):
        self.channel_id = channel_id
        super().__init__(timedelta(minutes=10))
        self.ok = ok
        self.configured = configured
        self.sent = []

    def is_configured(self):
        return self.configured

    def send(self, batch):
        self.sent.append(list(batch))
        if not self.ok:
            raise TransportError("remote said no", 500)


@pytest.fixture
def batch(make_item):
    return [score_item(make_item("BREAKING: Fed rate hike", id="a"))]


@pytest.mark.asyncio
async def test_one_success_is_enough(batch):
    chans = [FakeChannel("email")] + [FakeChannel(f"bad{i}", ok=False) for i in range(5)]
    dispatcher = AlertDispatcher(channels=chans)
    assert await dispatcher.dispatch(batch, T0) is True
    assert all(len(c.sent) == 1 for c in chans)
    assert chans[0].throttle.last_sent_at == T0
    assert all(c.throttle.last_sent_at is None for c in chans[1:])


@pytest.mark.asyncio
async def test_all_failures_report_false(batch):
    chans = [FakeChannel("a", ok=False), FakeChannel("b", configured=False)]
    assert await AlertDispatcher(channels=chans).dispatch(batch, T0) is False
    assert chans[1].sent == []


@pytest.mark.asyncio
async def test_empty_batch_sends_nothing():
    chan = FakeChannel("email")
    assert await AlertDispatcher(channels=[chan]).dispatch([], T0) is False
    assert chan.sent == []


@pytest.mark.asyncio
async def test_throttled_channel_is_skipped(batch):
    chan = FakeChannel("email")
    dispatcher = AlertDispatcher(channels=[chan])
    assert await dispatcher.dispatch(batch, T0)
    assert not await dispatcher.dispatch(batch, T0 + timedelta(minutes=1))
    assert len(chan.sent) == 1


def test_status_and_configured():
    dispatcher = AlertDispatcher(channels=[FakeChannel("email"), FakeChannel("slack", configured=False)])
    assert dispatcher.configured() == {"email": True, "slack": False}
    st = dispatcher.status(T0)
    assert st["email"]["canSend"] is True
    assert st["slack"]["configured"] is False


def test_console_alert_mentions_every_item(make_item):
    items = [
        score_item(make_item("Fed holds rates", id="a")),
        score_item(make_item("Bitcoin rally", id="b")),
    ]
    text = console_alert(items)
    assert "2 High-Impact News Items" in text
    assert "Fed holds rates" in text and "Bitcoin rally" in text
