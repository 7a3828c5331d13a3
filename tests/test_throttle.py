from datetime import datetime, timedelta, timezone

from market_pulse.throttle import ChannelThrottle

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_fresh_throttle_allows_send():
    th = ChannelThrottle("email", timedelta(minutes=30))
    assert th.can_send(T0)
    assert th.remaining(T0) == timedelta(0)


def test_cooldown_window():
    th = ChannelThrottle("email", timedelta(minutes=30))
    th.mark_sent(T0)
    assert not th.can_send(T0 + timedelta(minutes=29))
    assert th.remaining(T0 + timedelta(minutes=20)) == timedelta(minutes=10)
    assert th.can_send(T0 + timedelta(minutes=30))


def test_only_mark_sent_moves_the_window():
    th = ChannelThrottle("discord", timedelta(minutes=10))
    th.mark_sent(T0)
    th.can_send(T0 + timedelta(minutes=5))
    assert th.last_sent_at == T0
