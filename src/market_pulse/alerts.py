"""Multi-channel alert fan-out."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from . import formatting as fmt
from .channels import Channel, build_channels
from .config import Settings
from .logging_utils import get_logger
from .models import ScoredItem

log = get_logger("alerts")


def console_alert(batch: Sequence[ScoredItem]) -> str:
    """Log the batch in human-readable form. Always runs, needs no config."""
    text = fmt.console_text(batch)
    log.info("console_alert items=%d\n%s", len(batch), text)
    return text


class AlertDispatcher:
    """Sends one batch to every channel concurrently.

    The blocking ``requests`` transports run in worker threads so a slow
    channel does not hold up the others. ``dispatch`` is true when at least
    one channel delivered the batch.
    """

    def __init__(self, channels: Optional[List[Channel]] = None, settings: Optional[Settings] = None):
        self.channels: List[Channel] = (
            channels if channels is not None else build_channels(settings)
        )

    async def _run_one(self, ch: Channel, batch: Sequence[ScoredItem], now: datetime) -> bool:
        try:
            return await asyncio.to_thread(ch.try_send, batch, now)
        except Exception as e:
            log.warning(
                "channel_dispatch_error channel=%s err=%s",
                ch.channel_id,
                e.__class__.__name__,
            )
            return False

    async def dispatch(
        self, batch: Sequence[ScoredItem], now: Optional[datetime] = None
    ) -> bool:
        if not batch:
            log.info("dispatch_skipped reason=empty_batch")
            return False
        now = now or datetime.now(timezone.utc)
        results = await asyncio.gather(
            *(self._run_one(ch, batch, now) for ch in self.channels)
        )
        by_channel = {ch.channel_id: ok for ch, ok in zip(self.channels, results)}
        success = sum(1 for ok in results if ok)
        log.info(
            "dispatch_complete items=%d channels_ok=%d/%d",
            len(batch),
            success,
            len(self.channels),
            extra={"results": by_channel},
        )
        return success > 0

    def status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return {ch.channel_id: ch.status(now) for ch in self.channels}

    def configured(self) -> Dict[str, bool]:
        return {ch.channel_id: ch.is_configured() for ch in self.channels}
