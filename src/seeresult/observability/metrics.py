"""
Defines Prometheus metrics for the relay.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]

METRICS: Dict[str, Any] = {
    "upstream_requests_total": Counter(
        "seeresult_upstream_requests",
        "Outbound requests to the results site",
        ["operation", "outcome"],
    ),
    "upstream_latency_seconds": Histogram(
        "seeresult_upstream_latency_seconds",
        "Latency of outbound requests to the results site",
        ["operation"],
        buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 3.0, 5.0, 10.0),
    ),
    "http_requests_total": Counter(
        "seeresult_http_requests",
        "Inbound HTTP requests",
        ["method", "path", "status"],
    ),
    "results_extracted_total": Counter(
        "seeresult_results_extracted",
        "Gradesheets run through the extractor",
        ["has_gpa"],
    ),
}


def increment(name: str, labels: Dict[str, Any], value: float = 1.0) -> None:
    """Increment a labelled counter if it is registered."""
    if name in METRICS:
        METRICS[name].labels(**labels).inc(value)


def observe(name: str, labels: Dict[str, Any], value: float) -> None:
    """Observe a labelled histogram if it is registered."""
    if name in METRICS:
        METRICS[name].labels(**labels).observe(value)
