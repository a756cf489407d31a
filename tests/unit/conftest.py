"""
Shared fixtures for coalesce unit tests.
"""

from typing import List, Tuple

import pytest
from prometheus_client import CollectorRegistry

from coalesce.caching.events import CacheEvent, CacheSnapshot
from shared.config import get_settings
from shared.metrics import WrapperMetrics


class RecordingReporter:
    """Debug reporter that remembers every event it sees."""

    def __init__(self):
        self.events: List[Tuple[CacheEvent, CacheSnapshot]] = []

    def __call__(self, event: CacheEvent, state: CacheSnapshot) -> None:
        self.events.append((event, state))

    @property
    def names(self) -> List[str]:
        return [event.value for event, _ in self.events]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from COALESCE_* variables and the settings cache."""
    for var in (
        "COALESCE_LOG_LEVEL",
        "COALESCE_LOG_CACHE_EVENTS",
        "COALESCE_DEFAULT_DELAY_MS",
        "COALESCE_DEFAULT_TTL_MS",
        "COALESCE_METRICS_ENABLED",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def reporter():
    """Recording debug reporter."""
    return RecordingReporter()


@pytest.fixture
def metrics():
    """Wrapper metrics on a private registry."""
    return WrapperMetrics(registry=CollectorRegistry())
