# -*- coding: utf-8 -*-
"""Market pulse runner."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import time
from typing import List

# Load .env early so config is available to subsequent imports.
from dotenv import load_dotenv

# If DOTENV_FILE is set, load that; otherwise default to .env
_env_file = os.getenv("DOTENV_FILE")
if _env_file:
    load_dotenv(_env_file)  # set DOTENV_FILE=.env.staging
else:
    load_dotenv()

from .config import reload_settings  # noqa: E402
from .health_endpoint import start_health_server, stop_health_server  # noqa: E402
from .logging_utils import get_logger, setup_logging  # noqa: E402
from .pipeline import Pipeline  # noqa: E402
from .scheduler import Scheduler  # noqa: E402

STOP = False
_SCHEDULER: Scheduler | None = None


def _sig_handler(signum, frame):
    """Graceful shutdown handler for SIGINT/SIGTERM signals."""
    global STOP
    sig_name = (
        signal.Signals(signum).name
        if hasattr(signal, "Signals")
        else f"signal_{signum}"
    )
    STOP = True
    get_logger("runner").warning("shutdown_signal_received signal=%s", sig_name)
    if _SCHEDULER is not None:
        _SCHEDULER.stop()


def runner_main(
    once: bool = False, loop: bool = False, interval: float | None = None
) -> int:
    global _SCHEDULER, STOP

    settings = reload_settings()
    setup_logging(settings.log_level)
    log = get_logger("runner")

    pipeline = Pipeline(settings)
    interval_s = interval if interval is not None else settings.loop_seconds
    scheduler = Scheduler(
        pipeline,
        interval=interval_s,
        daily_report_hour=(
            settings.daily_report_hour if settings.feature_daily_report else None
        ),
    )
    _SCHEDULER = scheduler

    log.info(
        "boot_start sources=%d channels=%s ai=%s reddit=%s min_score=%d",
        len(pipeline.sources),
        ",".join(k for k, v in pipeline.dispatcher.configured().items() if v) or "none",
        settings.ai_configured,
        pipeline.reddit.is_configured(),
        settings.min_impact_score,
    )

    if once and not loop:
        ok = scheduler.run_tick()
        log.info("boot_end mode=once ok=%s", ok)
        return 0

    # signals
    try:
        signal.signal(signal.SIGINT, _sig_handler)
        signal.signal(signal.SIGTERM, _sig_handler)
    except ValueError:
        # Not in the main thread (e.g. embedded); rely on stop() from the caller.
        log.debug("signal_handlers_not_installed")

    server = None
    if settings.feature_health_endpoint:
        try:
            server, _ = start_health_server(scheduler, port=settings.health_port)
        except OSError as e:
            log.warning(
                "health_server_failed port=%d err=%s", settings.health_port, e
            )

    STOP = False
    scheduler.start()
    try:
        while scheduler.is_running and not STOP:
            time.sleep(0.2)
    except KeyboardInterrupt:
        log.warning("shutdown_keyboard_interrupt")
    finally:
        scheduler.stop()
        stop_health_server(server)

    log.info("boot_end mode=loop runs=%d", scheduler.run_count)
    return 0


def main(
    *,
    once: bool = False,
    loop: bool = False,
    interval: float | None = None,
    argv: List[str] | None = None,
) -> int:
    """
    Entry point for the market pulse runner.

    Supports programmatic invocation via keyword args (``once``, ``loop``,
    ``interval``) or command-line invocation via ``argv``. With no flags the
    runner loops.
    """
    if once or loop or interval is not None:
        return runner_main(once=once, loop=loop, interval=interval)
    ap = argparse.ArgumentParser(prog="market-pulse")
    ap.add_argument("--once", action="store_true", help="Run a single tick and exit")
    ap.add_argument("--loop", action="store_true", help="Run continuously (default)")
    ap.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between ticks when looping (default: LOOP_SECONDS)",
    )
    args = ap.parse_args(argv)
    return runner_main(once=args.once, loop=args.loop, interval=args.interval)


if __name__ == "__main__":
    sys.exit(main())
