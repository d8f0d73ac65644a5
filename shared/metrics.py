"""
Shared metrics configuration for the Firebase token verifier.
"""

from typing import Dict, Any, Optional
import time
import threading
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, CollectorRegistry


class MetricsCollector:
    """Prometheus metrics for token verification and certificate retrieval."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up verifier metrics."""
        registry_kwargs = {} if self.registry is None else {"registry": self.registry}

        self._metrics["verifications_total"] = Counter(
            "firebase_token_verifications_total",
            "Total token verifications by outcome",
            ["outcome"],
            **registry_kwargs
        )

        self._metrics["verification_duration_seconds"] = Histogram(
            "firebase_token_verification_duration_seconds",
            "Token verification duration in seconds",
            **registry_kwargs
        )

        self._metrics["certificate_fetches_total"] = Counter(
            "firebase_certificate_fetches_total",
            "Total certificate endpoint fetches",
            ["result"],
            **registry_kwargs
        )

        self._metrics["certificate_cache_lookups_total"] = Counter(
            "firebase_certificate_cache_lookups_total",
            "Certificate cache lookups",
            ["result"],
            **registry_kwargs
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_verification(self, outcome: str, duration: float):
        """Record one verify() call; outcome is "success" or an error kind."""
        self._metrics["verifications_total"].labels(outcome=outcome).inc()
        self._metrics["verification_duration_seconds"].observe(duration)

    def record_certificate_fetch(self, result: str):
        self._metrics["certificate_fetches_total"].labels(result=result).inc()

    def record_cache_lookup(self, result: str):
        self._metrics["certificate_cache_lookups_total"].labels(result=result).inc()

    @contextmanager
    def time_verification(self):
        """Time a block and record it as a verification.

        Yields a dict; set ``outcome`` in it before the block exits.
        """
        start_time = time.perf_counter()
        state = {"outcome": "error"}
        try:
            yield state
        finally:
            self.record_verification(state["outcome"], time.perf_counter() - start_time)


_default_collector: Optional[MetricsCollector] = None
_default_lock = threading.Lock()


def get_metrics_collector(registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector.

    Without a registry the process-wide collector on the default Prometheus
    registry is returned; metric names can only be registered there once.
    """
    global _default_collector

    if registry is not None:
        return MetricsCollector(registry)

    with _default_lock:
        if _default_collector is None:
            _default_collector = MetricsCollector()
        return _default_collector
