"""Prometheus metrics for podtail.

Exposed over HTTP only when a metrics port is configured.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, start_http_server

sessions_started_total = Counter(
    "podtail_sessions_started_total",
    "Log-tailing sessions started",
    ["namespace"],
)
sessions_stopped_total = Counter(
    "podtail_sessions_stopped_total",
    "Log-tailing sessions stopped by a pod update or delete",
    ["namespace"],
)
active_sessions = Gauge(
    "podtail_active_sessions",
    "Log-tailing sessions currently registered",
)
tailer_errors_total = Counter(
    "podtail_tailer_errors_total",
    "Errors reported by container log streams",
    ["namespace"],
)
watch_errors_total = Counter(
    "podtail_watch_errors_total",
    "Pod watch stream errors",
    ["namespace"],
)
log_lines_total = Counter(
    "podtail_log_lines_total",
    "Log lines delivered to the output",
)


def serve_metrics(port: int) -> None:
    """Start the Prometheus exposition endpoint on *port* (0 disables it)."""
    if port <= 0:
        return
    start_http_server(port)
