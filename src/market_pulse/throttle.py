"""Per-channel cooldown gate."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


class ChannelThrottle:
    """Allows one send per ``cooldown`` window.

    ``last_sent_at`` moves only when :meth:`mark_sent` is called, which the
    channel does after a successful transport call. A failed send therefore
    leaves the channel immediately eligible on the next batch.
    """

    def __init__(self, channel_id: str, cooldown: timedelta):
        self.channel_id = channel_id
        self.cooldown = cooldown
        self.last_sent_at: Optional[datetime] = None

    def can_send(self, now: datetime) -> bool:
        if self.last_sent_at is None:
            return True
        return now - self.last_sent_at >= self.cooldown

    def mark_sent(self, now: datetime) -> None:
        self.last_sent_at = now

    def remaining(self, now: datetime) -> timedelta:
        if self.last_sent_at is None:
            return timedelta(0)
        return max(timedelta(0), self.cooldown - (now - self.last_sent_at))
