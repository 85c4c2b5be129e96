"""
Minimal HTTP server for the tracker worker.
Serves GET /health on PORT with the outcome of the most recent sync pass.
Runs in a daemon thread; no-op when PORT is not set (e.g. local dev).
"""
from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional


class HealthState:
    """Last pass bookkeeping shared between the worker loop and the health thread."""

    def __init__(self, service_name: str) -> None:
        self._service = service_name
        self._lock = threading.Lock()
        self._last_pass_at: Optional[datetime] = None
        self._last_pass: dict[str, Any] = {}
        self._last_error: Optional[str] = None

    def record_pass(self, summary: dict[str, Any]) -> None:
        with self._lock:
            self._last_pass_at = datetime.now(timezone.utc)
            self._last_pass = summary
            self._last_error = None

    def record_error(self, error: str) -> None:
        with self._lock:
            self._last_pass_at = datetime.now(timezone.utc)
            self._last_error = error

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "status": "ok",
                "service": self._service,
                "last_pass_at": self._last_pass_at.isoformat() if self._last_pass_at else None,
                "last_pass": self._last_pass,
                "last_error": self._last_error,
            }


def start_health_server(state: HealthState, port: int | None = None) -> None:
    """
    Start a daemon thread that listens on PORT and responds to GET /health.
    Only starts when a port is given or PORT is set; otherwise no-op.
    """
    if port is None:
        port_str = os.environ.get("PORT")
        if not port_str:
            return
        try:
            port = int(port_str)
        except ValueError:
            return

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            if self.path == "/health" or self.path == "/health/":
                body = json.dumps(state.snapshot()).encode("utf-8")
                self.send_response(200)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)
            else:
                self.send_response(404)
                self.end_headers()

        def log_message(self, format: str, *args: object) -> None:
            pass

    def serve() -> None:
        with HTTPServer(("0.0.0.0", port), Handler) as httpd:
            httpd.serve_forever()

    t = threading.Thread(target=serve, daemon=True)
    t.start()
