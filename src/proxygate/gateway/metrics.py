"""Prometheus metrics for the gateway."""
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

UNMATCHED_ROUTE = "unmatched"


def route_label(scope: dict) -> str:
    """Label requests by matched route template so raw paths never become series."""
    route = scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class GatewayMetrics:
    """Request and verification metrics bound to one registry per app."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.requests = Counter(
            "proxygate_requests_total",
            "Total requests by route and status",
            ["endpoint", "status"],
            registry=self.registry
        )
        self.latency = Histogram(
            "proxygate_request_duration_seconds",
            "Request duration",
            ["endpoint"],
            registry=self.registry
        )
        self.verifications = Counter(
            "proxygate_verifications_total",
            "Proxy signature checks by outcome",
            ["outcome"],
            registry=self.registry
        )

    def record_request(self, endpoint: str, status_code: int, duration: float):
        self.requests.labels(endpoint=endpoint, status=str(status_code)).inc()
        self.latency.labels(endpoint=endpoint).observe(duration)

    def record_verification(self, outcome: str):
        """Record a gate decision ("accepted" or a rejection reason)."""
        self.verifications.labels(outcome=outcome).inc()

    def render(self) -> bytes:
        return generate_latest(self.registry)
