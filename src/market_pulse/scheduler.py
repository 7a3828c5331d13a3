"""Fixed-interval driver for the pipeline.

One daemon thread runs a tick, waits ``interval`` seconds (waking early on
``stop()``), and repeats. Each ``start()`` gets its own stop event, so a
loop left finishing a tick after ``stop()`` exits once that tick returns
even if the scheduler was restarted meanwhile. Ticks are serialized by a
lock and never overlap. Each tick gets its own event loop via
``asyncio.run``.
"""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

from .logging_utils import get_logger
from .pipeline import Pipeline

log = get_logger("scheduler")


class Scheduler:
    def __init__(
        self,
        pipeline: Pipeline,
        interval: float = 900,
        *,
        daily_report_hour: Optional[int] = 18,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.pipeline = pipeline
        self.interval = float(interval)
        self.daily_report_hour = daily_report_hour
        self._clock = clock
        self.is_running = False
        self.last_run: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.run_count = 0
        self._last_report_day: Optional[date] = None
        self._stop_event: Optional[threading.Event] = None
        self._lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------ lifecycle

    def start(self) -> bool:
        """Begin ticking. Returns False (and warns) if already running."""
        with self._lock:
            if self.is_running:
                log.warning("scheduler_already_running")
                return False
            self.is_running = True
            stop_event = threading.Event()
            self._stop_event = stop_event
            previous = self._thread
        if previous is not None and previous.is_alive():
            log.info("scheduler_restart_previous_tick_finishing")
        log.info(
            "scheduler_started interval_s=%d sources=%d",
            self.interval,
            len(self.pipeline.sources),
        )
        self._thread = threading.Thread(
            target=self._loop,
            args=(stop_event,),
            name="market-pulse-scheduler",
            daemon=True,
        )
        self._thread.start()
        return True

    def stop(self) -> None:
        """Stop scheduling. A tick already in progress runs to completion."""
        with self._lock:
            was_running = self.is_running
            self.is_running = False
            stop_event = self._stop_event
        if stop_event is not None:
            stop_event.set()
        if was_running:
            log.info("scheduler_stopped run_count=%d", self.run_count)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self.run_tick()
            if stop_event.is_set():
                break
            self.maybe_daily_report()
            end = time.monotonic() + self.interval
            while not stop_event.is_set() and time.monotonic() < end:
                stop_event.wait(min(1.0, max(0.0, end - time.monotonic())))
                if not stop_event.is_set():
                    self.maybe_daily_report()

    # ------------------------------------------------------------ work

    def run_tick(self) -> bool:
        """Run one pipeline tick. Never raises; returns whether it succeeded."""
        with self._tick_lock:
            return self._tick()

    def _tick(self) -> bool:
        self.run_count += 1
        n = self.run_count
        st = time.time()
        log.info("tick_start run=%d", n)
        try:
            res = asyncio.run(self.pipeline.run_once())
        except Exception as e:
            self.last_error = f"{e.__class__.__name__}: {e}"
            log.error(
                "tick_failed run=%d err=%s", n, e.__class__.__name__, exc_info=True
            )
            return False
        self.last_run = datetime.now(timezone.utc)
        self.last_error = None
        log.info(
            "tick_end run=%d dispatched=%d alert_sent=%s t_s=%.2f",
            n,
            len(res.dispatched),
            res.alert_sent,
            time.time() - st,
        )
        return True

    def maybe_daily_report(self) -> Optional[str]:
        if self.daily_report_hour is None:
            return None
        now = self._clock()
        if now.hour < self.daily_report_hour or self._last_report_day == now.date():
            return None
        self._last_report_day = now.date()
        return self.daily_report()

    def daily_report(self) -> str:
        news = self.pipeline.news_stats()
        stats = self.pipeline.stats
        channels = self.pipeline.dispatcher.configured()
        uptime_h = int(
            (datetime.now(timezone.utc) - stats.start_time).total_seconds() // 3600
        )
        lines = [
            "📊 DAILY STATISTICS REPORT",
            "=" * 60,
            f"Sources: {news['sources']}  Articles cached: {news['total']}  "
            f"High impact: {news['highImpact']}  Avg impact: {news['avgImpactScore']:.2f}",
            "Categories: "
            + ", ".join(f"{k}={v}" for k, v in news["categories"].items() if v),
            f"Analyses: {stats.total_ai_analyses}  News: {stats.total_news_processed}  "
            f"Reddit: {stats.total_reddit_processed}  Alerts: {stats.total_alerts_sent}",
            "Channels: "
            + ", ".join(f"{k}={'on' if v else 'off'}" for k, v in channels.items()),
            f"Uptime: {uptime_h} hours",
        ]
        report = "\n".join(lines)
        log.info("daily_report\n%s", report)
        return report

    # ------------------------------------------------------------ status

    def status(self) -> Dict[str, Any]:
        pipeline = self.pipeline
        out: Dict[str, Any] = {
            "isRunning": self.is_running,
            "lastRun": self.last_run.isoformat() if self.last_run else None,
            "lastError": self.last_error,
            "runCount": self.run_count,
            "nextRun": (
                f"Every {int(self.interval // 60)} minutes"
                if self.is_running
                else "Not scheduled"
            ),
        }
        for channel_id, ok in pipeline.dispatcher.configured().items():
            out[f"{channel_id}Configured"] = ok
        out["redditConfigured"] = pipeline.reddit.is_configured()
        out["aiConfigured"] = pipeline.analyzer.model != "fallback"
        out["newsSources"] = len(pipeline.sources)
        out["statistics"] = pipeline.stats.to_dict()
        return out
