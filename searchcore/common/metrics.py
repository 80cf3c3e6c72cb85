"""Metrics collection for the search engine.

Provides a thin convenience wrapper around ``prometheus_client`` so the
orchestrator and the federated coordinator record search metrics
consistently.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A registry is kept per collector (inject one in tests if needed)
"""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for search requests.

    Parameters
    - service_name: Logical name used for scoping/labels if desired
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)

    Exposes typed helpers for common events to keep label sets consistent.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.search_requests = Counter(
            'search_requests_total',
            'Total single-model search requests',
            ['model', 'sort', 'status'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'search_duration_seconds',
            'Single-model search duration',
            ['model'],
            registry=self.registry
        )

        self.candidates_scored = Counter(
            'search_candidates_scored_total',
            'Total candidate records scored',
            ['model'],
            registry=self.registry
        )

        self.scorer_failures = Counter(
            'search_scorer_failures_total',
            'Custom scorer invocations that raised or returned a non-number',
            ['model'],
            registry=self.registry
        )

        self.federated_requests = Counter(
            'federated_search_requests_total',
            'Total federated search requests',
            ['status'],
            registry=self.registry
        )

        self.federated_model_failures = Counter(
            'federated_model_failures_total',
            'Per-model failures degraded around by federated search',
            ['model', 'kind'],
            registry=self.registry
        )

    def record_search(
        self,
        model: str,
        sort: str,
        status: str,
        duration: float
    ) -> None:
        """Record single-model search metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.search_requests.labels(model=model, sort=sort, status=status).inc()
        self.search_duration.labels(model=model).observe(duration)

    def record_candidates(self, model: str, count: int) -> None:
        """Record the number of candidates scored for a model."""
        self.candidates_scored.labels(model=model).inc(count)

    def record_scorer_failure(self, model: str) -> None:
        """Record a custom scorer failure."""
        self.scorer_failures.labels(model=model).inc()

    def record_federated_search(self, status: str) -> None:
        """Record a federated search outcome (``ok``, ``partial`` or ``failed``)."""
        self.federated_requests.labels(status=status).inc()

    def record_model_failure(self, model: str, kind: str) -> None:
        """Record a model dropped from a federated search."""
        self.federated_model_failures.labels(model=model, kind=kind).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str = "search-engine") -> MetricsCollector:
    """Get or create the metrics collector.

    Returns a process-wide singleton to avoid duplicate collectors/labels.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
        logger.debug("Metrics collector created", service=service_name)
    return _metrics_collector
