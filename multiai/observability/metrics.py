"""Prometheus-compatible metrics export for the consensus engine.

Tracks provider call outcomes and latency, consensus task results and the
confidence distribution of returned results.

Usage:
    from multiai.observability.metrics import increment_counter, record_histogram

    increment_counter("provider_invocations_total", labels={"provider": "gemini", "outcome": "ok"})
    record_histogram("consensus_confidence", 0.67, labels={"kind": "extraction"})
"""

from typing import Any, Dict, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)


_PREFIX = "multiai_"

# Module registry, separate from the prometheus_client default
_registry = CollectorRegistry()

# Provider Metrics
provider_calls_total = Counter(
    "multiai_provider_calls_total",
    "Adapter calls by provider and transport status",
    ["provider", "status"],
    registry=_registry,
)

provider_invocations_total = Counter(
    "multiai_provider_invocations_total",
    "Provider outcomes after normalization (ok or failure kind)",
    ["provider", "outcome"],
    registry=_registry,
)

provider_latency_seconds = Histogram(
    "multiai_provider_latency_seconds",
    "Duration of a single provider call in seconds",
    ["provider"],
    registry=_registry,
    buckets=(0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0, float("inf")),
)

providers_available = Gauge(
    "multiai_providers_available",
    "Whether a provider has credentials configured (1=available, 0=unavailable)",
    ["provider"],
    registry=_registry,
)

# Consensus Metrics
consensus_tasks_total = Counter(
    "multiai_consensus_tasks_total",
    "Consensus tasks by kind and status (consensus, single, degraded)",
    ["kind", "status"],
    registry=_registry,
)

consensus_confidence = Histogram(
    "multiai_consensus_confidence",
    "Confidence of returned consensus results",
    ["kind"],
    registry=_registry,
    buckets=(0.0, 0.1, 0.3, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
)


_METRICS: Dict[str, Any] = {
    "provider_calls_total": provider_calls_total,
    "provider_invocations_total": provider_invocations_total,
    "provider_latency_seconds": provider_latency_seconds,
    "providers_available": providers_available,
    "consensus_tasks_total": consensus_tasks_total,
    "consensus_confidence": consensus_confidence,
}


def _child(metric_name: str, kind: type, labels: Optional[Dict[str, str]]) -> Any:
    """Resolve a metric (prefix optional) and apply labels; None if unknown."""
    if metric_name.startswith(_PREFIX):
        metric_name = metric_name[len(_PREFIX):]
    metric = _METRICS.get(metric_name)
    if not isinstance(metric, kind):
        return None
    return metric.labels(**labels) if labels else metric


def increment_counter(
    metric_name: str,
    value: float = 1.0,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Increment a counter, e.g. one provider outcome.

    Example:
        >>> increment_counter("consensus_tasks_total", labels={"kind": "evaluation", "status": "consensus"})
    """
    counter = _child(metric_name, Counter, labels)
    if counter is not None:
        counter.inc(value)


def record_histogram(
    metric_name: str,
    value: float,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    histogram = _child(metric_name, Histogram, labels)
    if histogram is not None:
        histogram.observe(value)


def set_gauge(
    metric_name: str,
    value: float,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Set a gauge, e.g. provider availability after the registry is built.

    Example:
        >>> set_gauge("providers_available", 1, labels={"provider": "claude"})
    """
    gauge = _child(metric_name, Gauge, labels)
    if gauge is not None:
        gauge.set(value)


def get_metrics_registry() -> CollectorRegistry:
    """Get the global metrics registry."""
    return _registry


def get_metrics_output() -> bytes:
    """Get Prometheus-formatted metrics output."""
    return generate_latest(_registry)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


__all__ = [
    "increment_counter",
    "record_histogram",
    "set_gauge",
    "get_metrics_registry",
    "get_metrics_output",
    "get_metrics_content_type",
    "provider_calls_total",
    "provider_invocations_total",
    "provider_latency_seconds",
    "providers_available",
    "consensus_tasks_total",
    "consensus_confidence",
]
