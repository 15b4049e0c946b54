"""
Defines Prometheus metrics for the classification engine.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (e.g. under test collection) must reuse the
# collectors that are already registered instead of raising.


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
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "classifications_total": Counter(
            "dupemark_classifications_total",
            "Total number of classified requests by reported decision",
            ["decision"],
        ),
        "classify_latency_seconds": Histogram(
            "dupemark_classify_latency_seconds",
            "Time taken to classify one request",
            buckets=[0.00005, 0.0001, 0.00025, 0.0005, 0.001, 0.0025, 0.005, 0.01, 0.05],
        ),
        "registry_size": Gauge(
            "dupemark_registry_size",
            "Number of fingerprints currently held in the seen registry",
        ),
        "registry_clears_total": Counter(
            "dupemark_registry_clears_total",
            "Total number of seen registry clears by reason",
            ["reason"],
        ),
        "replays_total": Counter(
            "dupemark_replays_total",
            "Total number of full history replays",
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def start_metrics_server(port: int) -> None:
    """Expose METRICS on ``port`` for Prometheus scraping."""
    start_http_server(port)
