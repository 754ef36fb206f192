"""
Prometheus metrics for grant acquisition and conflict retries.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter


# Module level so every retry_on_conflict call site shares one series.
conflict_retries_total = Counter(
    "conflict_retries_total",
    "Operations re-executed after a 409 version conflict",
)


class GrantMetrics:
    """Counters describing how a GrantManager serves grants."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        # A private registry keeps several managers (and test runs) from
        # colliding on metric names in the global default registry.
        self.registry = registry if registry is not None else CollectorRegistry()

        self.grant_requests_total = Counter(
            "grant_requests_total",
            "Token endpoint requests",
            ["grant_type", "outcome"],
            registry=self.registry
        )
        self.client_grant_cache_hits_total = Counter(
            "client_grant_cache_hits_total",
            "Client grant served from cache without a network call",
            registry=self.registry
        )
        self.client_grant_coalesced_total = Counter(
            "client_grant_coalesced_total",
            "Client grant callers that joined an in-flight fetch",
            registry=self.registry
        )

    def record_request(self, grant_type: str, outcome: str):
        """Record one token endpoint request."""
        self.grant_requests_total.labels(grant_type=grant_type, outcome=outcome).inc()

    def record_cache_hit(self):
        self.client_grant_cache_hits_total.inc()

    def record_coalesced(self):
        self.client_grant_coalesced_total.inc()

    def sample(self, name: str, **labels) -> float:
        """Read the current value of a counter sample (``*_total`` name)."""
        value = self.registry.get_sample_value(name, labels or None)
        return value or 0.0
