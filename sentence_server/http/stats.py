"""Statistics and metrics tracking"""

import threading
import time
from typing import Any

from sentence_server.utils.logger import get_logger
from sentence_server.utils.metrics import ServerMetrics

logger = get_logger(__name__)

_COUNTERS = (
    "connections_total",
    "connections_rejected",
    "connections_dropped",
    "requests_with_sentence",
    "requests_placeholder",
    "send_failures",
    "dispatch_failures",
)


def _fresh_stats(active: int = 0) -> dict[str, int]:
    stats = {key: 0 for key in _COUNTERS}
    stats["connections_active"] = active
    return stats


class StatsManager:
    """Keeps server counters and mirrors them into Prometheus collectors"""

    def __init__(self, metrics: ServerMetrics | None = None):
        self._stats_lock = threading.RLock()
        self.stats = _fresh_stats()
        self.start_time = time.time()
        self.metrics = metrics or ServerMetrics()

    def increment(self, key: str, value: int = 1):
        """Increment a stat counter"""
        with self._stats_lock:
            self.stats[key] = self.stats.get(key, 0) + value

    def record_accept(self) -> None:
        self.increment("connections_total")
        self.metrics.connections_total.inc()

    def record_rejected(self, reason: str) -> None:
        self.increment("connections_rejected")
        self.metrics.connections_rejected.labels(reason=reason).inc()

    def record_request(self, extracted: bool) -> None:
        if extracted:
            self.increment("requests_with_sentence")
            self.metrics.requests_total.labels(outcome="sentence").inc()
        else:
            self.increment("requests_placeholder")
            self.metrics.requests_total.labels(outcome="placeholder").inc()

    def record_send_failure(self) -> None:
        self.increment("send_failures")
        self.metrics.send_failures.inc()

    def update_active_connections(self, delta: int) -> None:
        """Update active connections count and gauge"""
        with self._stats_lock:
            new_val = max(0, self.stats.get("connections_active", 0) + delta)
            self.stats["connections_active"] = new_val
        self.metrics.connections_active.set(new_val)

    def get_active_connections(self) -> int:
        with self._stats_lock:
            return int(self.stats.get("connections_active", 0))

    def get_all(self) -> dict[str, Any]:
        """Get all statistics"""
        with self._stats_lock:
            snapshot: dict[str, Any] = dict(self.stats)
        snapshot["uptime_seconds"] = time.time() - self.start_time
        return snapshot
