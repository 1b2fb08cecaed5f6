"""Prometheus collectors for the sentence server.

Each server instance owns its own ``CollectorRegistry`` so several servers
(and test runs) can live in one process without duplicate-registration
errors.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
    start_http_server,
)

from sentence_server.utils.logger import get_logger

logger = get_logger(__name__)

NAMESPACE = "sentence"

REQUEST_OUTCOMES = ("sentence", "placeholder")


class ServerMetrics:
    """Connection and request collectors bound to one registry"""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self.connections_total = Counter(
            "connections_total",
            "Connections accepted by the dispatcher",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.connections_active = Gauge(
            "connections_active",
            "Connections currently held by a handler",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.connections_rejected = Counter(
            "connections_rejected_total",
            "Connections closed by admission control",
            ["reason"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.requests_total = Counter(
            "requests_total",
            "Responses written, by whether a sentence was extracted",
            ["outcome"],
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.send_failures = Counter(
            "send_failures_total",
            "Responses that could not be written",
            namespace=NAMESPACE,
            registry=self.registry,
        )
        for outcome in REQUEST_OUTCOMES:
            self.requests_total.labels(outcome=outcome)

    def render(self) -> bytes:
        """Text exposition of the registry"""
        return generate_latest(self.registry)


def start_metrics_server(metrics: ServerMetrics, host: str, port: int):
    """Expose ``metrics`` on a separate HTTP port."""
    server, thread = start_http_server(port, addr=host, registry=metrics.registry)
    logger.info(
        "Metrics endpoint listening",
        event="monitoring.start",
        host=host,
        port=port,
    )
    return server, thread
