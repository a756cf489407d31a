"""
Shared metrics configuration for the coalesce wrappers.
"""

import threading
from typing import Any, Dict, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge


class WrapperMetrics:
    """Prometheus metrics for debouncers and memoization caches."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else REGISTRY
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up wrapper metrics."""
        self._metrics["cache_events_total"] = Counter(
            "cache_events_total",
            "Total memoization cache events",
            ["cache", "event"],
            registry=self.registry
        )

        self._metrics["cache_entries"] = Gauge(
            "cache_entries",
            "Number of entries held by a memoization cache",
            ["cache"],
            registry=self.registry
        )

        self._metrics["debounce_events_total"] = Counter(
            "debounce_events_total",
            "Total debouncer events",
            ["debouncer", "event"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_cache_event(self, cache: str, event: str):
        """Record a memoization cache event."""
        self._metrics["cache_events_total"].labels(cache=cache, event=event).inc()

    def set_cache_entries(self, cache: str, size: int):
        """Set the current entry count of a cache."""
        self._metrics["cache_entries"].labels(cache=cache).set(size)

    def record_debounce_event(self, debouncer: str, event: str):
        """Record a debouncer event."""
        self._metrics["debounce_events_total"].labels(debouncer=debouncer, event=event).inc()


_default_metrics: Optional[WrapperMetrics] = None
_default_lock = threading.Lock()


def get_wrapper_metrics() -> WrapperMetrics:
    """Get the metrics bound to the default prometheus registry."""
    global _default_metrics
    with _default_lock:
        if _default_metrics is None:
            _default_metrics = WrapperMetrics()
        return _default_metrics
