"""Health and statistics HTTP endpoint.

A stdlib ``http.server`` running on a daemon thread next to the scheduler:

- ``GET /`` and ``GET /health`` - liveness plus scheduler status
- ``GET /stats`` - news breakdown, channel status and run statistics
- anything else - 404 ``Not Found``

Usage::

    from market_pulse.health_endpoint import start_health_server
    start_health_server(scheduler, port=3000)
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Tuple

from .logging_utils import get_logger
from .scheduler import Scheduler

log = get_logger("health_endpoint")


def health_payload(scheduler: Scheduler) -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "scheduler": scheduler.status(),
        "statistics": scheduler.pipeline.stats.to_dict(),
    }


def stats_payload(scheduler: Scheduler) -> Dict[str, Any]:
    pipeline = scheduler.pipeline
    return {
        "newsStats": pipeline.news_stats(),
        "alertStatus": pipeline.dispatcher.status(),
        "schedulerStats": pipeline.stats.to_dict(),
        "recentItems": pipeline.recent_news(),
    }


def make_handler(scheduler: Scheduler):
    class HealthCheckHandler(BaseHTTPRequestHandler):
        """HTTP request handler bound to one scheduler."""

        def log_message(self, format, *args):
            """Suppress default HTTP server logging to avoid noise."""

        def _send_json(self, body: Dict[str, Any]) -> None:
            data = json.dumps(body, default=str).encode()
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def do_GET(self):
            path = self.path.split("?", 1)[0]
            try:
                if path in ("/", "/health"):
                    self._send_json(health_payload(scheduler))
                    return
                if path == "/stats":
                    self._send_json(stats_payload(scheduler))
                    return
            except Exception as e:
                log.error("health_handler_error path=%s err=%s", path, e.__class__.__name__, exc_info=True)
                self.send_response(500)
                self.send_header("Content-Type", "text/plain")
                self.end_headers()
                self.wfile.write(b"Internal Server Error")
                return
            self.send_response(404)
            self.send_header("Content-Type", "text/plain")
            self.end_headers()
            self.wfile.write(b"Not Found")

    return HealthCheckHandler


def _run_server(server: ThreadingHTTPServer) -> None:
    """Serve until shutdown (blocking)."""
    try:
        server.serve_forever(poll_interval=0.5)
    finally:
        server.server_close()
        log.info("health_server_stopped")


def start_health_server(
    scheduler: Scheduler, port: int = 3000, host: str = "0.0.0.0"
) -> Tuple[ThreadingHTTPServer, threading.Thread]:
    """Start the endpoint in a daemon thread. ``port=0`` picks a free port."""
    server = ThreadingHTTPServer((host, port), make_handler(scheduler))
    server.daemon_threads = True
    thread = threading.Thread(
        target=_run_server, args=(server,), name="health-server", daemon=True
    )
    thread.start()
    log.info("health_server_started port=%d", server.server_address[1])
    return server, thread


def stop_health_server(server: Optional[ThreadingHTTPServer]) -> None:
    if server is not None:
        server.shutdown()
