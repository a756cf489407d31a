"""
Ready-made debug reporters for memoization caches.
"""

from typing import Any, List, Optional

from shared.config import get_settings
from shared.logging import get_logger
from shared.metrics import WrapperMetrics, get_wrapper_metrics

from .events import CacheEvent, CacheSnapshot, DebugReporter


class LoggingReporter:
    """Write cache events as structured log lines."""

    def __init__(self, logger: Optional[Any] = None, level: str = "debug"):
        self.logger = logger or get_logger("coalesce.caching")
        self.level = level

    def __call__(self, event: CacheEvent, state: CacheSnapshot) -> None:
        log = getattr(self.logger, self.level)
        log(
            event.value,
            cache=state.cache,
            key=None if state.key is None else repr(state.key),
            size=state.size,
            storage=state.storage
        )


class MetricsReporter:
    """Count cache events and track store size in prometheus."""

    def __init__(self, metrics: Optional[WrapperMetrics] = None):
        self.metrics = metrics or get_wrapper_metrics()

    def __call__(self, event: CacheEvent, state: CacheSnapshot) -> None:
        self.metrics.record_cache_event(state.cache, event.name.lower())
        self.metrics.set_cache_entries(state.cache, state.size)


class CompositeReporter:
    """Fan one event out to several reporters, in order."""

    def __init__(self, *reporters: DebugReporter):
        self.reporters: List[DebugReporter] = list(reporters)

    def __call__(self, event: CacheEvent, state: CacheSnapshot) -> None:
        for reporter in self.reporters:
            reporter(event, state)


def default_reporter() -> Optional[DebugReporter]:
    """Reporter implied by settings, used when the caller passes none."""
    settings = get_settings()
    reporters: List[DebugReporter] = []

    if settings.log_cache_events:
        reporters.append(LoggingReporter())
    if settings.metrics_enabled:
        reporters.append(MetricsReporter())

    if not reporters:
        return None
    if len(reporters) == 1:
        return reporters[0]
    return CompositeReporter(*reporters)
